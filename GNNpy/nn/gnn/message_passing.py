"""
Message Passing Framework for Graph Neural Networks.

This module implements the message-passing scheme shared by the graph
convolution layers. Given a graph, node data ``x`` of shape
(..., num_nodes) and optional edge data ``e`` of shape (..., num_edges):

    m_{j->i} = message(x_i, x_j, e_{ji})        for every edge j -> i
    m_i      = Agg_{j ∈ N(i)} m_{j->i}
    x_i'     = update(m_i, x_i)

Every step is batched: ``message`` is called once with all edges stacked
along the last axis (``x_i`` gathered at edge targets, ``x_j`` at edge
sources), aggregation is a segmented scatter-reduce onto edge targets, and
``update`` is called once for all nodes.

Node data, edge data and messages may be plain arrays or bundles of arrays
(``typing.NamedTuple``); bundles are gathered and reduced field by field.
"""

import logging
from typing import Any, Callable, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from ...core import Module
from ...core.errors import DTypeMismatchError, ShapeMismatchError
from ...graph import FeaturedGraph, check_num_nodes
from ...ops.scatter import Aggregator, gather, resolve_aggr, scatter

logger = logging.getLogger(__name__)

MessageFn = Callable[..., Any]
UpdateFn = Callable[[Any, Any], Any]


def _check_edge_data(g: FeaturedGraph, e: Any, layer: str) -> None:
    fields = e if isinstance(e, tuple) else (e,)
    for field in fields:
        field = np.asarray(field)
        actual = field.shape[-1] if field.ndim else None
        if actual != g.num_edges:
            raise ShapeMismatchError(layer, "edges", g.num_edges, actual)


def apply_edges(
    g: FeaturedGraph,
    message_fn: MessageFn,
    x: Any,
    e: Optional[Any] = None,
) -> Any:
    """
    Compute one message per edge.

    ``message_fn`` receives ``x_i`` (node data at edge targets) and ``x_j``
    (node data at edge sources), plus ``e_ij`` when edge data is given.

    Raises:
        ShapeMismatchError: If x does not have one column per node or e does
            not have one column per edge
    """
    check_num_nodes(g, x, "apply_edges")
    if e is not None:
        _check_edge_data(g, e, "apply_edges")

    source, target = g.edge_index()
    x_i = gather(x, target)
    x_j = gather(x, source)
    if e is None:
        return message_fn(x_i, x_j)
    return message_fn(x_i, x_j, e)


def aggregate_neighbors(g: FeaturedGraph, aggr: Aggregator, m: Any) -> Any:
    """Reduce per-edge messages onto their target nodes."""
    _, target = g.edge_index()
    return scatter(aggr, m, target, g.num_nodes)


def propagate(
    g: FeaturedGraph,
    aggr: Aggregator,
    message_fn: MessageFn,
    update_fn: UpdateFn,
    x: Any,
    e: Optional[Any] = None,
) -> Tuple[Any, Any]:
    """
    Performs the full propagation step for the graph.

    Args:
        g: The graph
        aggr: Aggregator for incoming messages ("add", "mul", "max", "min",
            "mean" or an equivalent callable)
        message_fn: Called as message_fn(x_i, x_j) or message_fn(x_i, x_j, e_ij)
        update_fn: Called as update_fn(m_agg, x) for all nodes at once
        x: Node data with one column per node, or a bundle of such arrays
        e: Optional edge data with one column per edge

    Returns:
        The updated node data and the aggregated messages. Nodes without
        incoming edges aggregate to the aggregator's fill value (1 for
        "mul", 0 otherwise).
    """
    aggr = resolve_aggr(aggr)
    logger.debug(
        "propagate: %d nodes, %d edges, aggr=%s", g.num_nodes, g.num_edges, aggr
    )
    m = apply_edges(g, message_fn, x, e)
    m_agg = aggregate_neighbors(g, aggr, m)
    return update_fn(m_agg, x), m_agg


class GNNLayer(Module):
    """
    Base class for graph layers.

    A layer is called as ``layer(g, x)`` (or ``layer(g, x, e)`` for layers
    that consume edge features) and returns the new node feature array.
    Calling it with only a graph that carries node features returns a new
    FeaturedGraph holding the updated node features.
    """

    uses_edge_features = False

    def __init__(self) -> None:
        super().__init__()
        self.dtype = None

    def __call__(self, g: FeaturedGraph, x: Optional[Any] = None, e: Optional[Any] = None):
        if not isinstance(g, FeaturedGraph):
            raise TypeError(f"Expected FeaturedGraph, got {type(g).__name__}")
        if x is None:
            if g.node_features is None:
                raise ValueError(
                    f"{type(self).__name__}: graph carries no node features"
                )
            if self.uses_edge_features:
                out = self.forward(g, g.node_features, g.edge_features)
            else:
                out = self.forward(g, g.node_features)
            return g.with_node_features(out)
        if e is not None:
            return self.forward(g, x, e)
        return self.forward(g, x)

    def _check_input(
        self, g: FeaturedGraph, x: NDArray[Any], in_channels: Optional[int] = None
    ) -> None:
        """
        Validate a node feature matrix before any computation.

        Raises:
            TypeError: If x is not a numpy array
            ShapeMismatchError: If x is not (in_channels, num_nodes)
            DTypeMismatchError: If x's dtype differs from the parameters'
        """
        name = type(self).__name__
        if not isinstance(x, np.ndarray):
            raise TypeError(f"{name}: node features must be a numpy.ndarray, got {type(x).__name__}")
        if x.ndim != 2:
            raise ShapeMismatchError(name, "input rank", 2, np.ndim(x))
        check_num_nodes(g, x, name)
        if in_channels is not None and x.shape[0] != in_channels:
            raise ShapeMismatchError(name, "input features", in_channels, x.shape[0])
        if self.dtype is not None and x.dtype != self.dtype:
            raise DTypeMismatchError(name, self.dtype, x.dtype)


class MessagePassing(GNNLayer):
    """
    Base class for message passing layers.

    Subclasses override ``message`` and ``update``; ``propagate`` binds them
    to the module-level engine.

    Attributes:
        aggr: Canonical name of the aggregator used for incoming messages.
    """

    def __init__(self, aggr: Aggregator = "add") -> None:
        super().__init__()
        self.aggr = resolve_aggr(aggr)

    def message(self, x_i: Any, x_j: Any, e_ij: Optional[Any] = None) -> Any:
        """
        Computes the messages for a batch of edges.

        Args:
            x_i: Data of the target nodes, one column per edge
            x_j: Data of the source nodes, one column per edge
            e_ij: Optional edge data, one column per edge

        Returns:
            The messages, one column per edge.
        """
        return x_j

    def update(self, m: Any, x: Any) -> Any:
        """
        Updates node data from the aggregated messages.

        Args:
            m: Aggregated messages, one column per node
            x: The node data that was propagated

        Returns:
            The updated node data.
        """
        return m

    def propagate(
        self,
        g: FeaturedGraph,
        x: Any,
        e: Optional[Any] = None,
        aggr: Optional[Aggregator] = None,
    ) -> Tuple[Any, Any]:
        """Runs ``message`` / aggregation / ``update`` over the graph."""
        return propagate(
            g, aggr if aggr is not None else self.aggr, self.message, self.update, x, e
        )
