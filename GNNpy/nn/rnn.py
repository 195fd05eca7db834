from typing import Any, Callable, Optional

import numpy as np
from numpy.typing import DTypeLike, NDArray

from ..core import Module
from ..core.errors import ShapeMismatchError
from ..utils import check_positive, glorot_uniform
from .activations import sigmoid


class GRUCell(Module):
    """
    A single GRU cell operating on feature-first arrays.

    Computes, for input x of shape (input_size, batch) and hidden state h of
    shape (hidden_size, batch):

        r = sigmoid(W_ir x + b_ir + W_hr h + b_hr)
        z = sigmoid(W_iz x + b_iz + W_hz h + b_hz)
        n = tanh(W_in x + b_in + r * (W_hn h + b_hn))
        h' = (1 - z) * n + z * h

    Args:
        input_size: Number of features in input
        hidden_size: Number of features in hidden state
        bias: If False, doesn't learn bias weights
        init: Weight initializer
        dtype: Element type of the parameters
    """

    def __init__(
        self,
        input_size: int,
        hidden_size: int,
        bias: bool = True,
        init: Callable[..., NDArray[Any]] = glorot_uniform,
        dtype: DTypeLike = np.float64,
    ):
        super().__init__()
        check_positive("GRUCell", input_size=input_size, hidden_size=hidden_size)
        self.input_size = input_size
        self.hidden_size = hidden_size

        # Gates stacked in (reset, update, new) order
        self.weight_ih = init(3 * hidden_size, input_size, dtype=dtype)
        self.weight_hh = init(3 * hidden_size, hidden_size, dtype=dtype)

        if bias:
            self.bias_ih = np.zeros(3 * hidden_size, dtype=dtype)
            self.bias_hh = np.zeros(3 * hidden_size, dtype=dtype)
        else:
            self.register_parameter("bias_ih", None)
            self.register_parameter("bias_hh", None)

    def forward(self, x: NDArray[Any], hx: Optional[NDArray[Any]] = None) -> NDArray[Any]:
        """
        Forward pass of GRU cell.

        Args:
            x: Input array of shape (input_size, batch)
            hx: Hidden state of shape (hidden_size, batch), zeros if omitted

        Returns:
            New hidden state of shape (hidden_size, batch)
        """
        if x.shape[0] != self.input_size:
            raise ShapeMismatchError("GRUCell", "input features", self.input_size, x.shape[0])
        if hx is None:
            hx = np.zeros((self.hidden_size,) + x.shape[1:], dtype=x.dtype)
        elif hx.shape[0] != self.hidden_size:
            raise ShapeMismatchError("GRUCell", "hidden features", self.hidden_size, hx.shape[0])

        gates_x = self.weight_ih @ x
        gates_h = self.weight_hh @ hx
        if self.bias_ih is not None:
            column = (-1,) + (1,) * (x.ndim - 1)
            gates_x = gates_x + self.bias_ih.reshape(column)
            gates_h = gates_h + self.bias_hh.reshape(column)

        r_x, z_x, n_x = np.split(gates_x, 3, axis=0)
        r_h, z_h, n_h = np.split(gates_h, 3, axis=0)

        r = sigmoid(r_x + r_h)
        z = sigmoid(z_x + z_h)
        n = np.tanh(n_x + r * n_h)

        return (1 - z) * n + z * hx

    def extra_repr(self) -> str:
        """Returns a string with extra representation information."""
        return f"input_size={self.input_size}, hidden_size={self.hidden_size}"
