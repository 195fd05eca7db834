from typing import Any, Tuple

import numpy as np
from numpy.typing import DTypeLike, NDArray

from ..core.errors import InvalidDimensionError


def calculate_fan_in_fan_out(array: NDArray[Any]) -> Tuple[int, int]:
    """
    Calculate fan-in and fan-out of a weight array.

    Args:
        array: Weight array, output axis first

    Returns:
        Tuple of (fan_in, fan_out)

    Note:
        For weight matrices of shape (out, in):
            fan_in is input dimensions,
            fan_out is output dimensions
        For stacked weights of shape (out, in, k...), e.g. Chebyshev filters:
            fan_in is (in * prod(k...)),
            fan_out is (out * prod(k...))
    """
    dimensions = array.shape

    if len(dimensions) == 2:
        fan_in, fan_out = dimensions[1], dimensions[0]

    elif len(dimensions) > 2:
        receptive_field_size = int(np.prod(dimensions[2:]))
        fan_in = dimensions[1] * receptive_field_size
        fan_out = dimensions[0] * receptive_field_size

    else:
        raise ValueError(
            f"array.shape should have at least 2 dimensions, got {dimensions}"
        )

    return fan_in, fan_out


def glorot_uniform(*dims: int, dtype: DTypeLike = np.float64) -> NDArray[Any]:
    """
    Glorot (Xavier) uniform initialization.

    Samples from U(-b, b) with b = sqrt(6 / (fan_in + fan_out)).
    One-dimensional shapes are treated as a single-row matrix.
    """
    shape = dims if len(dims) >= 2 else (1,) + dims
    fan_in, fan_out = calculate_fan_in_fan_out(np.empty(shape))
    bound = np.sqrt(6.0 / max(fan_in + fan_out, 1))
    return np.random.uniform(-bound, bound, dims).astype(dtype)


def glorot_normal(*dims: int, dtype: DTypeLike = np.float64) -> NDArray[Any]:
    """Glorot (Xavier) normal initialization, std = sqrt(2 / (fan_in + fan_out))."""
    shape = dims if len(dims) >= 2 else (1,) + dims
    fan_in, fan_out = calculate_fan_in_fan_out(np.empty(shape))
    std = np.sqrt(2.0 / max(fan_in + fan_out, 1))
    return (np.random.randn(*dims) * std).astype(dtype)


def zeros(*dims: int, dtype: DTypeLike = np.float64) -> NDArray[Any]:
    """All-zero initialization, used for biases."""
    return np.zeros(dims, dtype=dtype)


def check_positive(layer: str, **sizes: Any) -> None:
    """
    Raise ``InvalidDimensionError`` unless every size is a positive integer.

    Booleans are rejected even though ``bool`` subclasses ``int``.
    """
    for name, value in sizes.items():
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value <= 0:
            raise InvalidDimensionError(layer, name, value)
