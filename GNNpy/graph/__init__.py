"""
Graph containers for GNNpy.
"""

from .featured_graph import GRAPH_TYPES, FeaturedGraph, check_num_nodes

__all__ = ["FeaturedGraph", "check_num_nodes", "GRAPH_TYPES"]
