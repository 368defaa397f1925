"""
Weight initializer registry and dispatch utilities.

This module defines the concrete `WeightInitializer` used by trainable layers
to build freshly initialized parameter tensors.

Design
------
- Initializers are registered by string name via a decorator-based registry.
- Each initializer is a callable `(shape, rng) -> ndarray` returning the
  values of a new `(batch, depth, rows, columns)` parameter tensor. Tensors
  are immutable, so an initializer never writes into an existing tensor.
- The dispatcher resolves an initializer by name at construction time and
  owns the `numpy.random.Generator` the initializer draws from.

Usage example
-------------
Registering an initializer:

    @WeightInitializer.register_initializer("kaiming")
    def kaiming(shape, rng):
        ...

Applying an initializer:

    init = WeightInitializer("kaiming", seed=0)
    weights = init(1, 1, out_size, in_size)

Notes
-----
- Registration keys must be unique unless explicitly overwritten.
- Initializers compute fan-in / fan-out from the requested shape.
"""

from __future__ import annotations

from typing import Any, Callable, ClassVar, Dict, Optional, Tuple, TypeVar

import numpy as np

from ....domain.utils._weight_initialization import _WeightInitializer
from ...tensor import Tensor

Initializer = Callable[[Tuple[int, int, int, int], np.random.Generator], np.ndarray]
T = TypeVar("T", bound=Initializer)


class WeightInitializer(_WeightInitializer):
    """
    Registry-backed weight initializer dispatcher.

    Usage
    -----
    Register:
        @WeightInitializer.register_initializer("kaiming")
        def kaiming(shape, rng): ...

    Dispatch:
        init = WeightInitializer("kaiming", seed=0)
        init(1, 1, 10, 784)
    """

    INITIALIZERS: ClassVar[Dict[str, Initializer]] = {}

    def __init__(
        self,
        initializer_name: str,
        *,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        try:
            self._initializer: Initializer = self.INITIALIZERS[initializer_name]
        except KeyError as e:
            available = ", ".join(sorted(self.INITIALIZERS)) or "<none>"
            raise ValueError(
                f"Unsupported initializer name: {initializer_name!r}. "
                f"Available: {available}"
            ) from e
        self.name = initializer_name
        self._rng = rng if rng is not None else np.random.default_rng(seed)

    @classmethod
    def register_initializer(
        cls, name: str, *, overwrite: bool = False
    ) -> Callable[[T], T]:
        """
        Decorator to register a weight initializer under `name`.

        Parameters
        ----------
        name:
            Registry key used to retrieve the initializer later.
        overwrite:
            If False (default), raises if `name` is already registered.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("Initializer name must be a non-empty string")

        def decorator(func: T) -> T:
            if not overwrite and name in cls.INITIALIZERS:
                raise ValueError(f"Initializer already registered: {name!r}")
            cls.INITIALIZERS[name] = func
            return func

        return decorator

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """Return registered initializer names (sorted)."""
        return tuple(sorted(cls.INITIALIZERS))

    @classmethod
    def get(cls, name: str) -> Initializer:
        """Get a registered initializer callable by name."""
        return cls.INITIALIZERS[name]

    @property
    def rng(self) -> np.random.Generator:
        return self._rng

    def __call__(
        self, batch_size: int, depth: int, rows: int, columns: int
    ) -> Tensor:
        shape = (int(batch_size), int(depth), int(rows), int(columns))
        values = np.asarray(self._initializer(shape, self._rng), dtype=np.float64)
        if values.shape != shape:
            raise ValueError(
                f"Initializer {self.name!r} returned shape {values.shape}, "
                f"expected {shape}"
            )
        return Tensor.from_numpy(values)

    def __repr__(self) -> str:
        return f"WeightInitializer({self.name!r})"


def resolve_initializer(
    initializer: Any, default: str, *, seed: Optional[int] = None
) -> WeightInitializer:
    """
    Accept an initializer name, an instance, or None (use `default`).
    """
    if initializer is None:
        return WeightInitializer(default, seed=seed)
    if isinstance(initializer, WeightInitializer):
        return initializer
    if isinstance(initializer, str):
        return WeightInitializer(initializer, seed=seed)
    raise TypeError(
        f"initializer must be a name or a WeightInitializer, got {type(initializer)!r}"
    )
