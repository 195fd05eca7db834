from typing import Any, Callable

import numpy as np
from numpy.typing import DTypeLike, NDArray

from ..core import Module
from ..core.errors import ShapeMismatchError
from ..utils import check_positive, glorot_uniform
from .activations import identity


class Linear(Module):
    """
    Applies an affine transformation to feature-first data: y = σ(W x + b)

    Input columns are samples (nodes or edges), so ``x`` has shape
    (in_features, batch) and the output has shape (out_features, batch).
    One-dimensional inputs are treated as a single column.

    Args:
        in_features: size of each input sample
        out_features: size of each output sample
        sigma: element-wise activation applied after the bias
        bias: If set to False, the layer will not learn an additive bias
        init: weight initializer, called as init(out_features, in_features, dtype=dtype)
        dtype: element type of the parameters
    """

    def __init__(
        self,
        in_features: int,
        out_features: int,
        sigma: Callable[[NDArray[Any]], NDArray[Any]] = identity,
        bias: bool = True,
        init: Callable[..., NDArray[Any]] = glorot_uniform,
        dtype: DTypeLike = np.float64,
    ):
        super().__init__()
        check_positive("Linear", in_features=in_features, out_features=out_features)

        self.in_features = in_features
        self.out_features = out_features
        self.sigma = sigma

        self.register_parameter("weight", init(out_features, in_features, dtype=dtype))
        if bias:
            self.register_parameter("bias", np.zeros(out_features, dtype=dtype))
        else:
            self.register_parameter("bias", None)

    def forward(self, x: NDArray[Any]) -> NDArray[Any]:
        """Forward pass of the linear layer."""
        x = np.asarray(x)
        if x.ndim == 0 or x.shape[0] != self.in_features:
            raise ShapeMismatchError(
                "Linear", "input features", self.in_features, x.shape[0] if x.ndim else None
            )
        output = self.weight @ x
        if self.bias is not None:
            output = output + self.bias.reshape((-1,) + (1,) * (x.ndim - 1))
        return self.sigma(output)

    def extra_repr(self) -> str:
        s = f"{self.in_features} => {self.out_features}"
        if self.sigma is not identity:
            s += f", {getattr(self.sigma, '__name__', self.sigma)}"
        if self.bias is None:
            s += ", bias=False"
        return s
