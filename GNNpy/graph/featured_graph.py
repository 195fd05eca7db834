"""
Graph container used by every layer.

A ``FeaturedGraph`` stores an edge list as two aligned integer arrays
(``source[i] -> target[i]``) and, optionally, node and edge feature arrays
laid out feature-first: node features have shape (feature_dim, num_nodes),
edge features have shape (edge_feature_dim, num_edges).

The graph is immutable. Transforms such as ``add_self_loops`` return a new
graph. Matrix operators (adjacency, normalized adjacency, Laplacians) are
built on demand either as ``scipy.sparse.csr_array`` (``graph_type`` "coo"
or "sparse") or as dense ``np.ndarray`` (``graph_type`` "dense").
Multiple edges between the same pair of nodes are allowed and counted with
multiplicity.
"""

import logging
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np
import scipy.sparse as sp
from numpy.typing import DTypeLike, NDArray
from scipy.sparse.linalg import eigsh

from ..core.errors import BoundsViolationError, ShapeMismatchError

logger = logging.getLogger(__name__)

Matrix = Union[NDArray[Any], sp.csr_array]

GRAPH_TYPES = ("coo", "sparse", "dense")


def _as_index(values: Union[Sequence[int], NDArray[Any]], name: str) -> NDArray[np.intp]:
    arr = np.asarray(values)
    if arr.size == 0:
        return np.zeros(0, dtype=np.intp)
    if arr.ndim != 1 or not np.issubdtype(arr.dtype, np.integer):
        raise TypeError(f"{name} must be a one-dimensional sequence of integers")
    return arr.astype(np.intp)


def _frozen(arr: Optional[NDArray[Any]]) -> Optional[NDArray[Any]]:
    if arr is None:
        return None
    arr = np.array(arr, copy=True)
    arr.setflags(write=False)
    return arr


class FeaturedGraph:
    """
    Immutable graph with optional node and edge features.

    Args:
        source: Source node of every edge
        target: Target node of every edge, aligned with ``source``
        num_nodes: Number of nodes. Inferred from the node features or the
            largest endpoint when omitted
        node_features: Array of shape (feature_dim, num_nodes)
        edge_features: Array of shape (edge_feature_dim, num_edges)
        graph_type: "coo" or "sparse" for scipy sparse operators, "dense"
            for numpy operators

    Raises:
        BoundsViolationError: If an endpoint is outside [0, num_nodes)
        ShapeMismatchError: If source/target lengths differ or a feature
            array is not aligned with the nodes or edges
    """

    def __init__(
        self,
        source: Union[Sequence[int], NDArray[Any]],
        target: Union[Sequence[int], NDArray[Any]],
        num_nodes: Optional[int] = None,
        node_features: Optional[NDArray[Any]] = None,
        edge_features: Optional[NDArray[Any]] = None,
        graph_type: str = "coo",
    ) -> None:
        if graph_type not in GRAPH_TYPES:
            raise ValueError(f"graph_type must be one of {GRAPH_TYPES}, got {graph_type!r}")

        s = _as_index(source, "source")
        t = _as_index(target, "target")
        if s.shape[0] != t.shape[0]:
            raise ShapeMismatchError("FeaturedGraph", "target edges", s.shape[0], t.shape[0])

        if num_nodes is None:
            if node_features is not None:
                num_nodes = np.asarray(node_features).shape[-1]
            else:
                num_nodes = int(max(s.max(), t.max())) + 1 if s.size else 0
        if num_nodes < 0:
            raise ValueError(f"num_nodes must be non-negative, got {num_nodes}")

        for endpoints in (s, t):
            bad = np.flatnonzero((endpoints < 0) | (endpoints >= num_nodes))
            if bad.size:
                raise BoundsViolationError(int(endpoints[bad[0]]), num_nodes, int(bad[0]))

        if node_features is not None:
            node_features = np.asarray(node_features)
            if node_features.ndim == 0 or node_features.shape[-1] != num_nodes:
                raise ShapeMismatchError(
                    "FeaturedGraph", "node feature columns", num_nodes,
                    node_features.shape[-1] if node_features.ndim else None,
                )
        if edge_features is not None:
            edge_features = np.asarray(edge_features)
            if edge_features.ndim == 0 or edge_features.shape[-1] != s.shape[0]:
                raise ShapeMismatchError(
                    "FeaturedGraph", "edge feature columns", s.shape[0],
                    edge_features.shape[-1] if edge_features.ndim else None,
                )

        self._source = _frozen(s)
        self._target = _frozen(t)
        self._num_nodes = int(num_nodes)
        self._node_features = _frozen(node_features)
        self._edge_features = _frozen(edge_features)
        self.graph_type = graph_type
        logger.debug("Built %r", self)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def num_nodes(self) -> int:
        return self._num_nodes

    @property
    def num_edges(self) -> int:
        return int(self._source.shape[0])

    @property
    def node_features(self) -> Optional[NDArray[Any]]:
        return self._node_features

    @property
    def edge_features(self) -> Optional[NDArray[Any]]:
        return self._edge_features

    def edge_index(self) -> Tuple[NDArray[np.intp], NDArray[np.intp]]:
        """Returns the aligned (source, target) endpoint arrays."""
        return self._source, self._target

    def has_self_loops(self) -> bool:
        return bool(np.any(self._source == self._target))

    def degree(self, dir: str = "out", dtype: DTypeLike = np.float64) -> NDArray[Any]:
        """
        Number of edges leaving ("out") or entering ("in") every node.

        Self-loops count once, parallel edges count with multiplicity.
        """
        if dir == "out":
            endpoints = self._source
        elif dir == "in":
            endpoints = self._target
        else:
            raise ValueError(f"dir must be 'in' or 'out', got {dir!r}")
        return np.bincount(endpoints, minlength=self._num_nodes).astype(dtype)

    # ------------------------------------------------------------------
    # Transforms
    # ------------------------------------------------------------------

    def _replace(self, **changes: Any) -> "FeaturedGraph":
        fields = {
            "source": self._source,
            "target": self._target,
            "num_nodes": self._num_nodes,
            "node_features": self._node_features,
            "edge_features": self._edge_features,
            "graph_type": self.graph_type,
        }
        fields.update(changes)
        return FeaturedGraph(**fields)

    def add_self_loops(self) -> "FeaturedGraph":
        """
        Returns a new graph with one (i, i) edge appended for every node.

        This is not idempotent: calling it on a graph that already has
        self-loops adds a second loop per node. Edge features of the new
        loops are zero.
        """
        loops = np.arange(self._num_nodes, dtype=np.intp)
        edge_features = self._edge_features
        if edge_features is not None:
            pad = np.zeros(edge_features.shape[:-1] + (self._num_nodes,), dtype=edge_features.dtype)
            edge_features = np.concatenate([edge_features, pad], axis=-1)
        return self._replace(
            source=np.concatenate([self._source, loops]),
            target=np.concatenate([self._target, loops]),
            edge_features=edge_features,
        )

    def remove_self_loops(self) -> "FeaturedGraph":
        """Returns a new graph without any (i, i) edges."""
        keep = self._source != self._target
        edge_features = self._edge_features
        if edge_features is not None:
            edge_features = edge_features[..., keep]
        return self._replace(
            source=self._source[keep],
            target=self._target[keep],
            edge_features=edge_features,
        )

    def with_node_features(self, node_features: Optional[NDArray[Any]]) -> "FeaturedGraph":
        return self._replace(node_features=node_features)

    def with_edge_features(self, edge_features: Optional[NDArray[Any]]) -> "FeaturedGraph":
        return self._replace(edge_features=edge_features)

    # ------------------------------------------------------------------
    # Matrix operators
    # ------------------------------------------------------------------

    def _build(self, values: NDArray[Any], rows: NDArray[Any], cols: NDArray[Any], dtype: DTypeLike) -> Matrix:
        n = self._num_nodes
        if self.graph_type == "dense":
            mat = np.zeros((n, n), dtype=dtype)
            np.add.at(mat, (rows, cols), values)
            return mat
        # Duplicate (row, col) entries are summed by the CSR conversion.
        return sp.coo_array((values.astype(dtype), (rows, cols)), shape=(n, n)).tocsr()

    def _identity(self, dtype: DTypeLike) -> Matrix:
        diag = np.arange(self._num_nodes)
        return self._build(np.ones(self._num_nodes, dtype=dtype), diag, diag, dtype)

    def adjacency_matrix(self, dtype: DTypeLike = np.float64) -> Matrix:
        """A[s, t] is the number of edges s -> t."""
        s, t = self.edge_index()
        return self._build(np.ones(s.shape[0], dtype=dtype), s, t, dtype)

    def normalized_adjacency(
        self,
        dtype: DTypeLike = np.float64,
        dir: str = "out",
        add_self_loops: bool = False,
    ) -> Matrix:
        """
        Symmetrically degree-normalized adjacency.

        Ã[i, j] = A[i, j] / sqrt(deg(i) * deg(j)), computed after optionally
        adding one self-loop per node. Rows and columns of degree-0 nodes
        are zero.
        """
        g = self.add_self_loops() if add_self_loops else self
        inv_sqrt = _inv_sqrt(g.degree(dir, dtype))
        s, t = g.edge_index()
        return self._build(inv_sqrt[s] * inv_sqrt[t], s, t, dtype)

    def normalized_laplacian(self, dtype: DTypeLike = np.float64, dir: str = "out") -> Matrix:
        """L = I - D^-1/2 A D^-1/2."""
        return self._identity(dtype) - self.normalized_adjacency(dtype, dir=dir)

    def scaled_laplacian(
        self,
        dtype: DTypeLike = np.float64,
        lambda_max: Optional[float] = None,
    ) -> Matrix:
        """
        Laplacian rescaled to have eigenvalues in [-1, 1]: 2 L / λmax - I.

        Args:
            dtype: Element type of the returned matrix
            lambda_max: Upper bound on the spectrum of L. The largest
                eigenvalue is computed when omitted; 2 is always a valid bound

        Returns:
            Matrix of shape (num_nodes, num_nodes)
        """
        lap = self.normalized_laplacian(dtype)
        if lambda_max is None:
            lambda_max = _largest_eigenvalue(lap)
            logger.debug("Largest Laplacian eigenvalue: %.6f", lambda_max)
        if lambda_max <= 0:
            raise ValueError(f"lambda_max must be positive, got {lambda_max}")
        scaled = lap * (2.0 / lambda_max) - self._identity(dtype)
        if self.graph_type == "dense":
            return scaled.astype(dtype)
        return sp.csr_array(scaled, dtype=dtype)

    def __repr__(self) -> str:
        extras = ""
        if self._node_features is not None:
            extras += f", node_features={self._node_features.shape}"
        if self._edge_features is not None:
            extras += f", edge_features={self._edge_features.shape}"
        return (
            f"FeaturedGraph(num_nodes={self.num_nodes}, num_edges={self.num_edges}"
            f"{extras}, graph_type={self.graph_type!r})"
        )


def _inv_sqrt(degree: NDArray[Any]) -> NDArray[Any]:
    out = np.zeros_like(degree)
    positive = degree > 0
    out[positive] = 1.0 / np.sqrt(degree[positive])
    return out


def _largest_eigenvalue(lap: Matrix) -> float:
    n = lap.shape[0]
    if n == 0:
        return 2.0
    if sp.issparse(lap):
        if n > 2 and abs(lap - lap.T).max() == 0:
            values = eigsh(lap.astype(np.float64), k=1, which="LA", return_eigenvectors=False)
            return float(values[0])
        lap = lap.toarray()
    lap = np.asarray(lap, dtype=np.float64)
    if np.allclose(lap, lap.T):
        return float(np.linalg.eigvalsh(lap).max())
    return float(np.linalg.eigvals(lap).real.max())


def check_num_nodes(g: FeaturedGraph, x: Any, layer: str = "propagate") -> None:
    """
    Raise ``ShapeMismatchError`` unless the last axis of ``x`` (or of every
    field of a bundle of arrays) equals ``g.num_nodes``.
    """
    fields = x if isinstance(x, tuple) else (x,)
    for field in fields:
        field = np.asarray(field)
        actual = field.shape[-1] if field.ndim else None
        if actual != g.num_nodes:
            raise ShapeMismatchError(layer, "nodes", g.num_nodes, actual)
