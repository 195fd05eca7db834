"""
Exceptions raised by GNNpy.

Every error is raised before any matrix product is performed and carries
the structured fields needed to diagnose it programmatically.
"""

from typing import Any, Optional


class GNNError(Exception):
    """Base class for all GNNpy errors."""


class ShapeMismatchError(GNNError, ValueError):
    """
    An array does not have the size a layer or graph expects.

    Attributes:
        layer: Name of the layer (or graph operation) that detected the mismatch
        dim: Which dimension disagreed, e.g. "input features" or "nodes"
        expected: The expected size
        actual: The size that was received
    """

    def __init__(self, layer: str, dim: str, expected: Any, actual: Any) -> None:
        self.layer = layer
        self.dim = dim
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{layer}: expected {dim} of size {expected}, got {actual}"
        )


class BoundsViolationError(GNNError, IndexError):
    """
    An edge endpoint is outside ``[0, num_nodes)``.

    Attributes:
        index: The offending node index
        num_nodes: Number of nodes in the graph
        position: Position of the offending edge in the edge list, if known
    """

    def __init__(self, index: int, num_nodes: int, position: Optional[int] = None) -> None:
        self.index = index
        self.num_nodes = num_nodes
        self.position = position
        where = f" (edge {position})" if position is not None else ""
        super().__init__(
            f"node index {index}{where} out of range for graph with {num_nodes} nodes"
        )


class InvalidDimensionError(GNNError, ValueError):
    """A layer was constructed with a non-positive size or order."""

    def __init__(self, layer: str, name: str, value: Any) -> None:
        self.layer = layer
        self.name = name
        self.value = value
        super().__init__(f"{layer}: {name} must be a positive integer, got {value!r}")


class DTypeMismatchError(GNNError, TypeError):
    """The element type of an input differs from the layer's parameters."""

    def __init__(self, layer: str, expected: Any, actual: Any) -> None:
        self.layer = layer
        self.expected = expected
        self.actual = actual
        super().__init__(f"{layer}: expected input dtype {expected}, got {actual}")
