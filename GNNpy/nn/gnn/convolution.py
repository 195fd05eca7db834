"""
Graph Convolution Operations.

This module implements the graph convolution layers:
  1. GCNConv and ChebConv, computed with normalized adjacency / scaled
     Laplacian matrix products
  2. GraphConv, GATConv, GatedGraphConv, EdgeConv, GINConv, NNConv,
     SAGEConv and ResGatedGraphConv, computed with the message passing engine

Node features are feature-first arrays of shape (in_channels, num_nodes);
every layer returns an array of shape (out_channels, num_nodes).
"""

from typing import Any, Callable, NamedTuple, Optional

import numpy as np
import scipy.sparse as sp
from numpy.typing import DTypeLike, NDArray

from ...core import Module
from ...core.errors import ShapeMismatchError
from ...graph import FeaturedGraph
from ...graph.featured_graph import _inv_sqrt
from ...ops.scatter import Aggregator, gather, scatter
from ...utils import check_positive, glorot_uniform
from ..activations import identity, leaky_relu, sigmoid
from ..rnn import GRUCell
from .message_passing import MessagePassing

Activation = Callable[[NDArray[Any]], NDArray[Any]]
Initializer = Callable[..., NDArray[Any]]


def _fn_name(fn: Any) -> str:
    return getattr(fn, "__name__", None) or repr(fn)


def _add_bias(h: NDArray[Any], bias: Optional[NDArray[Any]]) -> NDArray[Any]:
    if bias is None:
        return h
    return h + bias[:, None]


def _right_matmul(x: NDArray[Any], mat: Any) -> NDArray[Any]:
    """x @ mat for a dense or scipy sparse square matrix."""
    if sp.issparse(mat):
        return np.asarray((mat.T @ x.T).T)
    return x @ mat


class _DenseLayer(MessagePassing):
    """Shared constructor pieces for layers that own a weight and a bias."""

    def __init__(
        self,
        in_channels: int,
        out_channels: int,
        sigma: Activation = identity,
        aggr: Aggregator = "add",
        dtype: DTypeLike = np.float64,
    ) -> None:
        check_positive(type(self).__name__, in_channels=in_channels, out_channels=out_channels)
        super().__init__(aggr)
        self.in_channels = in_channels
        self.out_channels = out_channels
        self.sigma = sigma
        self.dtype = np.dtype(dtype)

    def _init_bias(self, bias: bool, size: int) -> None:
        if bias:
            self.register_parameter("bias", np.zeros(size, dtype=self.dtype))
        else:
            self.register_parameter("bias", None)

    def _channels_repr(self) -> str:
        s = f"{self.in_channels} => {self.out_channels}"
        if self.sigma is not identity:
            s += f", {_fn_name(self.sigma)}"
        return s


###############################################################################
# 1. Graph Convolutional Network (GCN) Layer
###############################################################################


class GCNConv(_DenseLayer):
    """
    Graph Convolutional Network (GCN) Layer.

    Computes
        X' = σ(W X Ã + b)
    where Ã is the symmetrically degree-normalized adjacency matrix,
    Ã[i, j] = A[i, j] / sqrt(deg(i) deg(j)), with one self-loop per node
    added first when ``add_self_loops`` is set.

    With ``dense=False`` the same quantity is computed through message
    passing: features are scaled by deg^-1/2 (in-degree), summed over
    incoming edges, and scaled by deg^-1/2 again. Both paths agree on
    symmetric graphs.

    Args:
        in_channels: Dimensionality of input node features.
        out_channels: Dimensionality of output node features.
        sigma: Activation applied after the bias.
        bias: Whether to learn an additive bias.
        init: Weight initializer.
        add_self_loops: Whether to add self-loops (default: True).
        dense: Use the normalized adjacency matrix product (default) or
            the message passing engine.
        dtype: Element type of the parameters and of Ã.
    """

    def __init__(
        self,
        in_channels: int,
        out_channels: int,
        sigma: Activation = identity,
        bias: bool = True,
        init: Initializer = glorot_uniform,
        add_self_loops: bool = True,
        dense: bool = True,
        dtype: DTypeLike = np.float64,
    ) -> None:
        super().__init__(in_channels, out_channels, sigma, "add", dtype)
        self.add_self_loops = add_self_loops
        self.dense = dense
        self.weight = init(out_channels, in_channels, dtype=self.dtype)
        self._init_bias(bias, out_channels)

    def forward(self, g: FeaturedGraph, x: NDArray[Any]) -> NDArray[Any]:
        self._check_input(g, x, self.in_channels)
        if self.dense:
            a_hat = g.normalized_adjacency(
                x.dtype, dir="out", add_self_loops=self.add_self_loops
            )
            h = _right_matmul(self.weight @ x, a_hat)
        else:
            if self.add_self_loops:
                g = g.add_self_loops()
            c = _inv_sqrt(g.degree("in", x.dtype))
            h, _ = self.propagate(g, x * c)
            h = self.weight @ (h * c)
        return self.sigma(_add_bias(h, self.bias))

    def extra_repr(self) -> str:
        return self._channels_repr()


###############################################################################
# 2. Chebyshev Spectral Graph Convolution
###############################################################################


class ChebConv(_DenseLayer):
    """
    Chebyshev spectral graph convolution.

    Computes
        X' = Σ_{k<K} W_k Z_k + b
    with the Chebyshev recursion over the scaled Laplacian L̃:
        Z_0 = X,  Z_1 = X L̃,  Z_k = 2 Z_{k-1} L̃ - Z_{k-2}

    Args:
        in_channels: The dimension of input features.
        out_channels: The dimension of output features.
        k: The order of the Chebyshev polynomial (k >= 1).
        bias: Add learnable bias.
        init: Weight initializer, called with shape (out, in, k).
        lambda_max: Spectral bound used to scale the Laplacian. The largest
            eigenvalue is computed on every call when omitted.
        dtype: Element type of the parameters and of L̃.
    """

    def __init__(
        self,
        in_channels: int,
        out_channels: int,
        k: int,
        bias: bool = True,
        init: Initializer = glorot_uniform,
        lambda_max: Optional[float] = None,
        dtype: DTypeLike = np.float64,
    ) -> None:
        check_positive("ChebConv", k=k)
        super().__init__(in_channels, out_channels, identity, "add", dtype)
        self.k = k
        self.lambda_max = lambda_max
        self.weight = init(out_channels, in_channels, k, dtype=self.dtype)
        self._init_bias(bias, out_channels)

    def forward(self, g: FeaturedGraph, x: NDArray[Any]) -> NDArray[Any]:
        self._check_input(g, x, self.in_channels)
        l_hat = g.scaled_laplacian(x.dtype, lambda_max=self.lambda_max)

        z_prev = x
        y = self.weight[:, :, 0] @ z_prev
        if self.k > 1:
            z = _right_matmul(x, l_hat)
            y = y + self.weight[:, :, 1] @ z
            for i in range(2, self.k):
                z, z_prev = 2 * _right_matmul(z, l_hat) - z_prev, z
                y = y + self.weight[:, :, i] @ z
        return _add_bias(y, self.bias)

    def extra_repr(self) -> str:
        return f"{self.in_channels} => {self.out_channels}, k={self.k}"


###############################################################################
# 3. GraphConv
###############################################################################


class GraphConv(_DenseLayer):
    """
    Graph convolution from "Weisfeiler and Leman Go Neural".

        x_i' = σ(W_1 x_i + W_2 □_{j ∈ N(i)} x_j + b)

    where □ is the aggregator selected by ``aggr``.
    """

    def __init__(
        self,
        in_channels: int,
        out_channels: int,
        sigma: Activation = identity,
        aggr: Aggregator = "add",
        bias: bool = True,
        init: Initializer = glorot_uniform,
        dtype: DTypeLike = np.float64,
    ) -> None:
        super().__init__(in_channels, out_channels, sigma, aggr, dtype)
        self.weight1 = init(out_channels, in_channels, dtype=self.dtype)
        self.weight2 = init(out_channels, in_channels, dtype=self.dtype)
        self._init_bias(bias, out_channels)

    def update(self, m: NDArray[Any], x: NDArray[Any]) -> NDArray[Any]:
        return self.sigma(_add_bias(self.weight1 @ x + self.weight2 @ m, self.bias))

    def forward(self, g: FeaturedGraph, x: NDArray[Any]) -> NDArray[Any]:
        self._check_input(g, x, self.in_channels)
        x, _ = self.propagate(g, x)
        return x

    def extra_repr(self) -> str:
        return f"{self._channels_repr()}, aggr={self.aggr}"


###############################################################################
# 4. Graph Attention Network (GAT) Layer
###############################################################################


class AttentionMessage(NamedTuple):
    """Per-edge attention weight and weighted neighbor value."""

    alpha: NDArray[Any]
    m: NDArray[Any]


class GATConv(_DenseLayer):
    """
    Graph Attention Network (GAT) Layer.

        x_i' = σ(Σ_{j ∈ N(i) ∪ {i}} α_ij W x_j + b)
        α_ij = exp(e_ij) / Σ_k exp(e_ik)
        e_ij = LeakyReLU(a^T [W x_i || W x_j])

    A self-loop is always added so that every node attends to itself.
    Each edge sends the pair (exp(e_ij), exp(e_ij) W x_j); both are summed
    per node and divided. Logits are shifted by their per-node maximum
    before exponentiation, which leaves α unchanged and avoids overflow.

    Args:
        in_channels: Dimensionality of input features.
        out_channels: Dimensionality of output features per head.
        sigma: Activation applied after the bias.
        heads: Number of attention heads.
        concat: Concatenate the heads (output out*heads rows) or average
            them (output out rows).
        negative_slope: Negative slope of the LeakyReLU.
        bias: Learn an additive bias.
        init: Initializer for W (out*heads, in) and a (2*out, heads).
        dtype: Element type of the parameters.
    """

    def __init__(
        self,
        in_channels: int,
        out_channels: int,
        sigma: Activation = identity,
        heads: int = 1,
        concat: bool = True,
        negative_slope: float = 0.2,
        bias: bool = True,
        init: Initializer = glorot_uniform,
        dtype: DTypeLike = np.float64,
    ) -> None:
        check_positive("GATConv", heads=heads)
        super().__init__(in_channels, out_channels, sigma, "add", dtype)
        self.heads = heads
        self.concat = concat
        self.negative_slope = negative_slope
        self.weight = init(out_channels * heads, in_channels, dtype=self.dtype)
        self.a = init(2 * out_channels, heads, dtype=self.dtype)
        self._init_bias(bias, out_channels * heads if concat else out_channels)

    def attention_logits(self, wx_i: NDArray[Any], wx_j: NDArray[Any]) -> NDArray[Any]:
        """e_ij for a batch of edges, shape (1, heads, num_edges)."""
        pair = np.concatenate([wx_i, wx_j], axis=0)
        scores = np.sum(self.a[:, :, None] * pair, axis=0, keepdims=True)
        return leaky_relu(scores, self.negative_slope)

    def message(
        self, wx_i: NDArray[Any], wx_j: NDArray[Any], e_ij: Optional[NDArray[Any]] = None
    ) -> AttentionMessage:
        if e_ij is None:
            e_ij = self.attention_logits(wx_i, wx_j)
        alpha = np.exp(e_ij)
        return AttentionMessage(alpha=alpha, m=alpha * wx_j)

    def update(self, m: AttentionMessage, x: NDArray[Any]) -> NDArray[Any]:
        return m.m / m.alpha

    def forward(self, g: FeaturedGraph, x: NDArray[Any]) -> NDArray[Any]:
        self._check_input(g, x, self.in_channels)
        g = g.add_self_loops()
        n = g.num_nodes

        # (heads*out, n) -> (out, heads, n), rows grouped by head
        wx = (self.weight @ x).reshape(self.heads, self.out_channels, n).transpose(1, 0, 2)

        source, target = g.edge_index()
        logits = self.attention_logits(gather(wx, target), gather(wx, source))
        shift = scatter("max", logits, target, n)
        h, _ = self.propagate(g, wx, logits - gather(shift, target))

        if self.concat:
            h = h.transpose(1, 0, 2).reshape(self.heads * self.out_channels, n)
        else:
            h = h.mean(axis=1)
        return self.sigma(_add_bias(h, self.bias))

    def extra_repr(self) -> str:
        return (
            f"{self._channels_repr()}, heads={self.heads}, concat={self.concat}, "
            f"negative_slope={self.negative_slope}"
        )


###############################################################################
# 5. Gated Graph Convolution
###############################################################################


class GatedGraphConv(MessagePassing):
    """
    Gated graph convolution from "Gated Graph Sequence Neural Networks".

        h_i^(0) = x_i || 0
        h_i^(l) = GRU(h_i^(l-1), □_{j ∈ N(i)} W_l h_j^(l-1))

    Inputs with fewer than ``out_channels`` rows are zero-padded.

    Args:
        out_channels: The dimension of output features.
        num_layers: The number of propagation rounds.
        aggr: Aggregator for the incoming messages.
        init: Initializer for W (out, out, num_layers) and the GRU cell.
        dtype: Element type of the parameters.
    """

    def __init__(
        self,
        out_channels: int,
        num_layers: int,
        aggr: Aggregator = "add",
        init: Initializer = glorot_uniform,
        dtype: DTypeLike = np.float64,
    ) -> None:
        check_positive("GatedGraphConv", out_channels=out_channels, num_layers=num_layers)
        super().__init__(aggr)
        self.out_channels = out_channels
        self.num_layers = num_layers
        self.dtype = np.dtype(dtype)
        self.weight = init(out_channels, out_channels, num_layers, dtype=self.dtype)
        self.gru = GRUCell(out_channels, out_channels, init=init, dtype=self.dtype)

    def forward(self, g: FeaturedGraph, x: NDArray[Any]) -> NDArray[Any]:
        self._check_input(g, x)
        m, n = x.shape
        if m > self.out_channels:
            raise ShapeMismatchError(
                "GatedGraphConv", "input features", f"<= {self.out_channels}", m
            )
        h = x
        if m < self.out_channels:
            h = np.concatenate([x, np.zeros((self.out_channels - m, n), dtype=x.dtype)], axis=0)

        for i in range(self.num_layers):
            msg, _ = self.propagate(g, self.weight[:, :, i] @ h)
            h = self.gru(msg, h)
        return h

    def extra_repr(self) -> str:
        return (
            f"({self.out_channels} => {self.out_channels})^{self.num_layers}, "
            f"aggr={self.aggr}"
        )


###############################################################################
# 6. EdgeConv Layer
###############################################################################


def _nn_repr(nn: Any) -> str:
    return "" if isinstance(nn, Module) else f"{_fn_name(nn)}, "


class EdgeConv(MessagePassing):
    """
    Edge convolution from "Dynamic Graph CNN for Learning on Point Clouds".

        x_i' = □_{j ∈ N(i)} nn(x_i || x_j - x_i)

    Args:
        nn: Callable mapping (2*in, num_edges) arrays to (out, num_edges),
            e.g. a Linear layer or a Sequential.
        aggr: Aggregator for the incoming messages (default: max).
    """

    def __init__(self, nn: Callable[[NDArray[Any]], NDArray[Any]], aggr: Aggregator = "max") -> None:
        super().__init__(aggr)
        self.nn = nn

    def message(
        self, x_i: NDArray[Any], x_j: NDArray[Any], e_ij: Optional[NDArray[Any]] = None
    ) -> NDArray[Any]:
        return self.nn(np.concatenate([x_i, x_j - x_i], axis=0))

    def forward(self, g: FeaturedGraph, x: NDArray[Any]) -> NDArray[Any]:
        self._check_input(g, x)
        x, _ = self.propagate(g, x)
        return x

    def extra_repr(self) -> str:
        return f"{_nn_repr(self.nn)}aggr={self.aggr}"


###############################################################################
# 7. Graph Isomorphism Network Convolution
###############################################################################


class GINConv(MessagePassing):
    """
    Graph Isomorphism convolution from "How Powerful are Graph Neural Networks?".

        x_i' = nn((1 + ε) x_i + □_{j ∈ N(i)} x_j)

    Args:
        nn: Callable acting on node feature arrays.
        eps: The weighting factor ε.
        aggr: Aggregator for the incoming messages (default: add).
    """

    def __init__(
        self,
        nn: Callable[[NDArray[Any]], NDArray[Any]],
        eps: float = 0.0,
        aggr: Aggregator = "add",
    ) -> None:
        super().__init__(aggr)
        self.nn = nn
        self.eps = eps

    def update(self, m: NDArray[Any], x: NDArray[Any]) -> NDArray[Any]:
        return self.nn((1 + self.eps) * x + m)

    def forward(self, g: FeaturedGraph, x: NDArray[Any]) -> NDArray[Any]:
        self._check_input(g, x)
        x, _ = self.propagate(g, x)
        return x

    def extra_repr(self) -> str:
        return f"{_nn_repr(self.nn)}eps={self.eps}, aggr={self.aggr}"


###############################################################################
# 8. Edge-conditioned convolution (NNConv)
###############################################################################


class NNConv(_DenseLayer):
    """
    Continuous kernel-based convolution from "Neural Message Passing for
    Quantum Chemistry" (edge-conditioned convolution).

        x_i' = σ(W x_i + □_{j ∈ N(i)} nn(e_ji) x_j + b)

    ``nn`` maps edge features of shape (edge_dim, num_edges) to one
    (out, in) kernel per edge, returned either as an array of shape
    (out, in, num_edges) or as (out*in, num_edges) with each column read
    in row-major order.

    When called without edge features, the graph's edge features are used.
    """

    uses_edge_features = True

    def __init__(
        self,
        in_channels: int,
        out_channels: int,
        nn: Callable[[NDArray[Any]], NDArray[Any]],
        sigma: Activation = identity,
        aggr: Aggregator = "add",
        bias: bool = True,
        init: Initializer = glorot_uniform,
        dtype: DTypeLike = np.float64,
    ) -> None:
        super().__init__(in_channels, out_channels, sigma, aggr, dtype)
        self.nn = nn
        self.weight = init(out_channels, in_channels, dtype=self.dtype)
        self._init_bias(bias, out_channels)

    def message(
        self, x_i: NDArray[Any], x_j: NDArray[Any], e_ij: Optional[NDArray[Any]] = None
    ) -> NDArray[Any]:
        num_edges = x_j.shape[-1]
        kernels = np.asarray(self.nn(e_ij))
        expected = (self.out_channels, self.in_channels, num_edges)
        if kernels.ndim == 2 and kernels.shape == (self.out_channels * self.in_channels, num_edges):
            kernels = kernels.reshape(expected)
        if kernels.shape != expected:
            raise ShapeMismatchError("NNConv", "edge kernels", expected, kernels.shape)
        return np.einsum("oie,ie->oe", kernels, x_j)

    def update(self, m: NDArray[Any], x: NDArray[Any]) -> NDArray[Any]:
        return self.sigma(_add_bias(self.weight @ x + m, self.bias))

    def forward(
        self, g: FeaturedGraph, x: NDArray[Any], e: Optional[NDArray[Any]] = None
    ) -> NDArray[Any]:
        self._check_input(g, x, self.in_channels)
        if e is None:
            e = g.edge_features
        if e is None:
            raise ValueError("NNConv: no edge features given and the graph has none")
        x, _ = self.propagate(g, x, e)
        return x

    def extra_repr(self) -> str:
        return f"{self.in_channels} => {self.out_channels}, {_nn_repr(self.nn)}aggr={self.aggr}"


###############################################################################
# 9. GraphSAGE Convolution
###############################################################################


class SAGEConv(_DenseLayer):
    """
    GraphSAGE convolution from "Inductive Representation Learning on Large Graphs".

        x_i' = σ(W [x_i || □_{j ∈ N(i)} x_j] + b)

    with W of shape (out, 2*in) and mean aggregation by default.
    """

    def __init__(
        self,
        in_channels: int,
        out_channels: int,
        sigma: Activation = identity,
        aggr: Aggregator = "mean",
        bias: bool = True,
        init: Initializer = glorot_uniform,
        dtype: DTypeLike = np.float64,
    ) -> None:
        super().__init__(in_channels, out_channels, sigma, aggr, dtype)
        self.weight = init(out_channels, 2 * in_channels, dtype=self.dtype)
        self._init_bias(bias, out_channels)

    def update(self, m: NDArray[Any], x: NDArray[Any]) -> NDArray[Any]:
        return self.sigma(_add_bias(self.weight @ np.concatenate([x, m], axis=0), self.bias))

    def forward(self, g: FeaturedGraph, x: NDArray[Any]) -> NDArray[Any]:
        self._check_input(g, x, self.in_channels)
        x, _ = self.propagate(g, x)
        return x

    def extra_repr(self) -> str:
        return f"{self._channels_repr()}, aggr={self.aggr}"


###############################################################################
# 10. Residual Gated Graph Convolution
###############################################################################


class GateInputs(NamedTuple):
    """Node projections exchanged by ResGatedGraphConv."""

    Ax: NDArray[Any]
    Bx: NDArray[Any]
    Vx: NDArray[Any]


class ResGatedGraphConv(_DenseLayer):
    """
    Residual gated graph convolution from "Residual Gated Graph ConvNets".

        x_i' = σ(U x_i + Σ_{j ∈ N(i)} η_ij ⊙ V x_j + b)
        η_ij = sigmoid(A x_i + B x_j)
    """

    def __init__(
        self,
        in_channels: int,
        out_channels: int,
        sigma: Activation = identity,
        bias: bool = True,
        init: Initializer = glorot_uniform,
        dtype: DTypeLike = np.float64,
    ) -> None:
        super().__init__(in_channels, out_channels, sigma, "add", dtype)
        self.A = init(out_channels, in_channels, dtype=self.dtype)
        self.B = init(out_channels, in_channels, dtype=self.dtype)
        self.U = init(out_channels, in_channels, dtype=self.dtype)
        self.V = init(out_channels, in_channels, dtype=self.dtype)
        self._init_bias(bias, out_channels)

    def message(
        self, d_i: GateInputs, d_j: GateInputs, e_ij: Optional[NDArray[Any]] = None
    ) -> NDArray[Any]:
        eta = sigmoid(d_i.Ax + d_j.Bx)
        return eta * d_j.Vx

    def forward(self, g: FeaturedGraph, x: NDArray[Any]) -> NDArray[Any]:
        self._check_input(g, x, self.in_channels)
        data = GateInputs(Ax=self.A @ x, Bx=self.B @ x, Vx=self.V @ x)
        m, _ = self.propagate(g, data)
        return self.sigma(_add_bias(self.U @ x + m, self.bias))

    def extra_repr(self) -> str:
        return self._channels_repr()
