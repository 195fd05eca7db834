"""
Activation functions module for GNNpy.

This module contains both functional and Module implementations of standard
activation functions. Functions are used directly as a layer's ``sigma``
(``GCNConv(3, 4, relu)``), while Modules can be placed in a Sequential.
All of them act element-wise on numpy arrays of any shape.
"""

from typing import Any

import numpy as np
from numpy.typing import NDArray

from ..core import Module

# Functional interface


def identity(x: NDArray[Any]) -> NDArray[Any]:
    """Returns its input unchanged."""
    return x


def relu(x: NDArray[Any]) -> NDArray[Any]:
    """Forward: f(x) = max(0, x)"""
    return np.maximum(0, x)


def leaky_relu(x: NDArray[Any], negative_slope: float = 0.01) -> NDArray[Any]:
    """Forward: f(x) = x if x > 0 else negative_slope * x"""
    return np.where(x > 0, x, negative_slope * x)


def elu(x: NDArray[Any], alpha: float = 1.0) -> NDArray[Any]:
    """Forward: f(x) = x if x > 0 else alpha * (exp(x) - 1)"""
    return np.where(x > 0, x, alpha * np.expm1(np.minimum(x, 0)))


def gelu(x: NDArray[Any]) -> NDArray[Any]:
    """
    Gaussian Error Linear Unit, using the approximation:
    f(x) ≈ 0.5x * (1 + tanh(√(2/π) * (x + 0.044715x³)))
    """
    sqrt_2_over_pi = np.sqrt(2 / np.pi)
    coeff = 0.044715
    return 0.5 * x * (1 + np.tanh(sqrt_2_over_pi * (x + coeff * x**3)))


def sigmoid(x: NDArray[Any]) -> NDArray[Any]:
    """Forward: f(x) = 1 / (1 + exp(-x)), computed without overflow."""
    x = np.asarray(x)
    exp_neg_x = np.exp(-np.abs(x))
    return np.where(x >= 0, 1 / (1 + exp_neg_x), exp_neg_x / (1 + exp_neg_x))


def tanh(x: NDArray[Any]) -> NDArray[Any]:
    """Forward: f(x) = tanh(x)"""
    return np.tanh(x)


# Module implementations (for use in Sequential)


class ReLU(Module):
    """Applies the rectified linear unit function element-wise."""

    def forward(self, x: NDArray[Any]) -> NDArray[Any]:
        return relu(x)


class LeakyReLU(Module):
    """Applies leaky ReLU function element-wise."""

    def __init__(self, negative_slope: float = 0.01):
        super().__init__()
        self.negative_slope = negative_slope

    def forward(self, x: NDArray[Any]) -> NDArray[Any]:
        return leaky_relu(x, self.negative_slope)

    def extra_repr(self) -> str:
        return f"negative_slope={self.negative_slope}"


class ELU(Module):
    """Applies the exponential linear unit function element-wise."""

    def __init__(self, alpha: float = 1.0):
        super().__init__()
        self.alpha = alpha

    def forward(self, x: NDArray[Any]) -> NDArray[Any]:
        return elu(x, self.alpha)

    def extra_repr(self) -> str:
        return f"alpha={self.alpha}"


class GELU(Module):
    """Applies the Gaussian Error Linear Units function."""

    def forward(self, x: NDArray[Any]) -> NDArray[Any]:
        return gelu(x)


class Sigmoid(Module):
    """Applies the sigmoid function element-wise."""

    def forward(self, x: NDArray[Any]) -> NDArray[Any]:
        return sigmoid(x)


class Tanh(Module):
    """Applies the hyperbolic tangent function element-wise."""

    def forward(self, x: NDArray[Any]) -> NDArray[Any]:
        return tanh(x)
