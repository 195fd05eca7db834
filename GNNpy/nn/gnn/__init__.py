# GNNpy/nn/gnn/__init__.py
"""
Graph neural network layers submodule.
Contains the message passing engine and the graph convolution layers.
"""

from .message_passing import (
    GNNLayer,
    MessagePassing,
    aggregate_neighbors,
    apply_edges,
    propagate,
)
from .convolution import (
    ChebConv,
    EdgeConv,
    GATConv,
    GatedGraphConv,
    GCNConv,
    GINConv,
    GraphConv,
    NNConv,
    ResGatedGraphConv,
    SAGEConv,
)

__all__ = [
    # Engine
    "GNNLayer",
    "MessagePassing",
    "apply_edges",
    "aggregate_neighbors",
    "propagate",
    # Layers
    "GCNConv",
    "ChebConv",
    "GraphConv",
    "GATConv",
    "GatedGraphConv",
    "EdgeConv",
    "GINConv",
    "NNConv",
    "SAGEConv",
    "ResGatedGraphConv",
]
