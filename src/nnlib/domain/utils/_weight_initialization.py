"""
Abstract interfaces and utilities for weight initialization.

This module defines the abstract base class for weight initializers used by
trainable layers, along with the helper computing fan-in and fan-out values
from a 4D `(batch, depth, rows, columns)` parameter shape.

The concrete implementation and registry logic live in the infrastructure
layer. This module exists in the domain layer to define contracts and shared
mathematical utilities without binding to any specific backend.
"""

from typing import Any, Callable, Dict, Optional, Tuple, TypeVar
from abc import ABC

from .._tensor import ITensor


T = TypeVar("T", bound=Callable[..., Any])


class _WeightInitializer(ABC):
    """
    Abstract base class for weight initializer dispatchers.

    Design notes
    ------------
    - Initializers are identified by string names.
    - Each registered initializer is a callable `(shape, rng) -> ndarray`
      producing the values of a new parameter tensor; tensors are immutable,
      so initialization always builds a fresh tensor.
    - The dispatcher owns its random generator and threads it through layer
      construction.
    """

    INITIALIZERS: Dict[str, Callable] = {}

    def __init__(
        self, initializer_name: str, *, seed: Optional[int] = None, rng: Any = None
    ) -> None:
        """
        Construct a weight initializer dispatcher.

        Parameters
        ----------
        initializer_name:
            The string key identifying a registered initializer.
        seed:
            Seed for a private random generator. Ignored if `rng` is given.
        rng:
            An explicit random generator to draw from.
        """
        ...

    @classmethod
    def register_initializer(
        cls, name: str, *, overwrite: bool = False
    ) -> Callable[[T], T]:
        """
        Register a weight initializer under a given name.

        Parameters
        ----------
        name:
            Name used to identify the initializer.
        overwrite:
            Whether to allow overwriting an existing registration.

        Returns
        -------
        Callable
            A decorator that registers the initializer function.
        """
        ...

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """
        Return the names of all registered initializers.
        """
        ...

    def __call__(
        self, batch_size: int, depth: int, rows: int, columns: int
    ) -> ITensor:
        """
        Build a new tensor of the given dimensions filled by the initializer.
        """
        ...


def _calculate_fan_in_and_fan_out(
    shape: Tuple[int, int, int, int],
) -> Tuple[int, int]:
    """
    Compute fan-in and fan-out values for a 4D parameter shape.

    A dense weight tensor has shape `(1, 1, out_features, in_features)`:
    each output unit receives `columns` inputs and each input feeds `rows`
    outputs. Any leading depth slices act as a receptive field multiplier.

    Parameters
    ----------
    shape:
        `(batch_size, depth, rows, columns)` of the parameter tensor.

    Returns
    -------
    tuple[int, int]
        A tuple of (fan_in, fan_out).
    """
    _, depth, rows, columns = (int(d) for d in shape)
    fan_in = depth * columns
    fan_out = depth * rows
    return fan_in, fan_out
