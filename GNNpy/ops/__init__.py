"""
Operations module for GNNpy.

This module contains the gather / scatter-reduce primitives the
message-passing engine is built on.
"""

from .scatter import FILL_VALUES, gather, resolve_aggr, scatter

__all__ = [
    "gather",
    "scatter",
    "resolve_aggr",
    "FILL_VALUES",
]
