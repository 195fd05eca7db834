"""
Gather and scatter-reduce operations over the node axis.

Arrays are feature-first: the last axis indexes nodes (for node data) or
edges (for messages). Both operations also accept bundles of arrays
(``typing.NamedTuple`` or plain tuples), which are processed field by field.

Scatter uses a segmented reduction: messages are stably sorted by target and
each contiguous run is reduced with ``ufunc.reduceat``. This keeps the
result independent of how edges are ordered within a segment (up to
floating-point summation order) and needs no atomic accumulation.
"""

import operator
from typing import Any, Callable, Union

import numpy as np
from numpy.typing import NDArray

from ..core.errors import BoundsViolationError, ShapeMismatchError

Aggregator = Union[str, Callable[..., Any]]

_AGGR_NAMES = {
    "add": "add",
    "sum": "add",
    "+": "add",
    "mul": "mul",
    "prod": "mul",
    "*": "mul",
    "max": "max",
    "min": "min",
    "mean": "mean",
}

_AGGR_CALLABLES = {
    operator.add: "add",
    np.add: "add",
    np.sum: "add",
    operator.mul: "mul",
    np.multiply: "mul",
    np.prod: "mul",
    max: "max",
    np.maximum: "max",
    np.max: "max",
    min: "min",
    np.minimum: "min",
    np.min: "min",
    np.mean: "mean",
}

_UFUNCS = {
    "add": np.add,
    "mul": np.multiply,
    "max": np.maximum,
    "min": np.minimum,
    "mean": np.add,
}

# Value taken by a node that receives no message. Max and min fill with
# zero rather than -inf/+inf.
FILL_VALUES = {
    "add": 0,
    "mul": 1,
    "max": 0,
    "min": 0,
    "mean": 0,
}


def resolve_aggr(aggr: Aggregator) -> str:
    """
    Normalise an aggregator to one of "add", "mul", "max", "min", "mean".

    Accepts those names, the aliases "sum", "+", "prod", "*", or the
    matching Python / numpy callables (``operator.add``, ``max``,
    ``np.mean``, ...).

    Raises:
        ValueError: If the aggregator is not recognised
    """
    if isinstance(aggr, str):
        name = _AGGR_NAMES.get(aggr.lower())
    else:
        try:
            name = _AGGR_CALLABLES.get(aggr)
        except TypeError:
            name = None
    if name is None:
        raise ValueError(
            f"Unknown aggregator {aggr!r}; expected one of "
            f"{sorted(set(_AGGR_NAMES.values()))}"
        )
    return name


def _is_bundle(x: Any) -> bool:
    return isinstance(x, tuple)


def _rebuild(bundle: tuple, fields: list) -> tuple:
    if hasattr(bundle, "_fields"):
        return type(bundle)(*fields)
    return tuple(fields)


def gather(x: Any, index: NDArray[Any]) -> Any:
    """
    Select columns ``index`` along the last axis of ``x`` (or of every field
    of a bundle).
    """
    if _is_bundle(x):
        return _rebuild(x, [gather(field, index) for field in x])
    return np.asarray(x)[..., index]


def scatter(aggr: Aggregator, src: Any, index: NDArray[Any], dim_size: int) -> Any:
    """
    Reduce the columns of ``src`` into ``dim_size`` segments.

    Column ``e`` of ``src`` contributes to segment ``index[e]``. Segments
    that receive no column take the aggregator's fill value (see
    ``FILL_VALUES``); "mean" divides each segment by its size and never
    divides by zero.

    Args:
        aggr: Aggregator name or callable (see ``resolve_aggr``)
        src: Array of shape (..., num_edges) or a bundle of such arrays
        index: Integer array of shape (num_edges,) with values in [0, dim_size)
        dim_size: Number of output segments

    Returns:
        Array of shape (..., dim_size), or a bundle of the same type as src

    Raises:
        ShapeMismatchError: If the last axis of src does not match index
        BoundsViolationError: If an index is outside [0, dim_size)
    """
    name = resolve_aggr(aggr)
    if _is_bundle(src):
        return _rebuild(src, [scatter(name, field, index, dim_size) for field in src])

    src = np.asarray(src)
    index = np.asarray(index, dtype=np.intp).reshape(-1)
    if src.ndim == 0 or src.shape[-1] != index.shape[0]:
        actual = src.shape[-1] if src.ndim else None
        raise ShapeMismatchError("scatter", "message columns", index.shape[0], actual)
    if index.size:
        bad = np.flatnonzero((index < 0) | (index >= dim_size))
        if bad.size:
            raise BoundsViolationError(int(index[bad[0]]), dim_size, int(bad[0]))

    if name == "mean" and not np.issubdtype(src.dtype, np.inexact):
        dtype = np.dtype(np.float64)
    else:
        dtype = src.dtype
    out = np.full(src.shape[:-1] + (dim_size,), FILL_VALUES[name], dtype=dtype)
    if index.size == 0:
        return out

    counts = np.bincount(index, minlength=dim_size)
    order = np.argsort(index, kind="stable")
    segments = np.moveaxis(src, -1, 0)[order]
    nonempty = np.flatnonzero(counts)
    starts = (np.cumsum(counts) - counts)[nonempty]

    reduced = _UFUNCS[name].reduceat(segments, starts, axis=0)
    if name == "mean":
        sizes = counts[nonempty].reshape((-1,) + (1,) * (reduced.ndim - 1))
        reduced = reduced / sizes
    out[..., nonempty] = np.moveaxis(reduced, 0, -1)
    return out
