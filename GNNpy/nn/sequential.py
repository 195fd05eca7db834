from collections import OrderedDict
from typing import Any, Callable, Iterator, List, Union

from numpy.typing import NDArray

from ..core import Module

Layer = Union[Module, Callable[[NDArray[Any]], NDArray[Any]]]


class _Lambda(Module):
    """Wraps a plain function so it can live in a Sequential."""

    def __init__(self, fn: Callable[[NDArray[Any]], NDArray[Any]]) -> None:
        super().__init__()
        self.fn = fn

    def forward(self, x: NDArray[Any]) -> NDArray[Any]:
        return self.fn(x)

    def __repr__(self) -> str:
        return getattr(self.fn, "__name__", repr(self.fn))


class Sequential(Module):
    """
    A sequential container, typically used as the ``nn`` of EdgeConv,
    GINConv or NNConv.

    Stages are applied in the order they are passed to the constructor.
    A stage is either a Module or any callable on arrays (e.g. ``relu``).

        Sequential(Linear(10, 5), relu, Linear(5, 1))
        Sequential(OrderedDict([('fc1', Linear(10, 5)), ('act', ReLU())]))
    """

    def __init__(self, *layers: Union[Layer, "OrderedDict[str, Layer]"]) -> None:
        super().__init__()

        if len(layers) == 1 and isinstance(layers[0], OrderedDict):
            for key, layer in layers[0].items():
                self.add_module(key, self._wrap(layer))
            return

        for idx, layer in enumerate(layers):
            self.add_module(str(idx), self._wrap(layer))

    @staticmethod
    def _wrap(layer: Layer) -> Module:
        if isinstance(layer, Module):
            return layer
        if callable(layer):
            return _Lambda(layer)
        raise TypeError(f"Expected Module or callable, got {type(layer)}")

    def forward(self, x: NDArray[Any]) -> NDArray[Any]:
        for module in self._modules.values():
            x = module(x)
        return x

    def __getitem__(self, idx: Union[slice, int]) -> Union["Sequential", Module]:
        if isinstance(idx, slice):
            return Sequential(OrderedDict(list(self._modules.items())[idx]))
        return list(self._modules.values())[idx]

    def __len__(self) -> int:
        return len(self._modules)

    def __iter__(self) -> Iterator[Module]:
        return iter(self._modules.values())

    def append(self, layer: Layer) -> None:
        """Add a stage to the end of the sequence."""
        self.add_module(str(len(self)), self._wrap(layer))

    def extend(self, layers: List[Layer]) -> None:
        for layer in layers:
            self.append(layer)

    def insert(self, index: int, layer: Layer) -> None:
        """
        Insert a stage at a specified index in the sequence.

        Raises:
            TypeError: If index is not an integer
            IndexError: If index is out of valid range
        """
        if not isinstance(index, int):
            raise TypeError("Index must be an integer")
        if index < 0:
            index += len(self)
        if not 0 <= index <= len(self):
            raise IndexError("Index out of range")

        modules = list(self._modules.values())
        modules.insert(index, self._wrap(layer))
        self._renumber(modules)

    def pop(self, index: int = -1) -> Module:
        """
        Remove and return the stage at the specified index.

        Raises:
            IndexError: If index is out of range
        """
        if index < 0:
            index += len(self)
        if not 0 <= index < len(self):
            raise IndexError("Index out of range")

        modules = list(self._modules.values())
        module = modules.pop(index)
        self._renumber(modules)
        return module

    def _renumber(self, modules: List[Module]) -> None:
        self._modules.clear()
        for i, module in enumerate(modules):
            self.add_module(str(i), module)
