"""
Per-item shape value type.

A `Shape` describes the `(depth, rows, columns)` extent of one batch item. It
is used by layers to declare their input and output shapes; the batch axis is
never part of a layer's shape because it is free to vary between calls.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class Shape:
    """
    Immutable `(depth, rows, columns)` triple.

    Parameters
    ----------
    depth : int
        Number of depth slices (channels).
    rows : int
        Number of rows per slice.
    columns : int
        Number of columns per slice.
    """

    depth: int
    rows: int
    columns: int

    def __post_init__(self) -> None:
        for name in ("depth", "rows", "columns"):
            value = getattr(self, name)
            if int(value) <= 0:
                raise ValueError(f"Shape.{name} must be > 0, got {value}")

    @property
    def size(self) -> int:
        """Number of elements in one batch item."""
        return self.depth * self.rows * self.columns

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.depth, self.rows, self.columns)

    def __str__(self) -> str:
        return f"{self.depth}x{self.rows}x{self.columns}"


# Partially known input shapes are carried as three optional components.
OptionalDim = Optional[int]
