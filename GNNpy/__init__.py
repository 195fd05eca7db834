"""
GNNpy: Graph Neural Network layers on numpy

This library provides a message-passing engine over featured graphs and a
catalog of graph convolution layers, with node features stored feature-first
as arrays of shape (num_features, num_nodes).
"""

from .core import Module, GNNError
from .graph import FeaturedGraph
from .ops import gather, scatter

__version__ = "0.1.0"

__all__ = [
    'Module',
    'GNNError',
    'FeaturedGraph',
    'gather',
    'scatter',
]
