# GNNpy/nn/__init__.py
"""
Neural network module for GNNpy.

This module contains the graph layers together with the small dense
building blocks they are composed with.
"""

# Import base modules
from .activations import (
    ELU, GELU, LeakyReLU, ReLU, Sigmoid, Tanh,
    identity, relu, leaky_relu, elu, gelu, sigmoid, tanh
)
from .linear import Linear
from .sequential import Sequential
from .rnn import GRUCell

# Import graph layers
from .gnn import (
    GNNLayer,
    MessagePassing,
    aggregate_neighbors,
    apply_edges,
    propagate,
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

# Define the public API
__all__ = [
    # Base Modules
    "Linear",
    "Sequential",
    "GRUCell",

    # Activations
    "ReLU",
    "LeakyReLU",
    "ELU",
    "GELU",
    "Sigmoid",
    "Tanh",
    "identity",
    "relu",
    "leaky_relu",
    "elu",
    "gelu",
    "sigmoid",
    "tanh",

    # Message passing
    "GNNLayer",
    "MessagePassing",
    "apply_edges",
    "aggregate_neighbors",
    "propagate",

    # Graph convolutions
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
