"""
Tensor interface definitions.

This module defines the domain-level interface for the 4D batched tensor that
flows through every layer, activation, loss and optimizer, together with the
`MultiplicationMode` flag that selects the batched-multiplication semantics.

Notes
-----
- The protocol uses structural typing so that domain contracts (layers,
  losses, optimizers) do not depend on the NumPy-backed implementation.
- Tensors are values: every operator returns a new tensor and never mutates
  its operands.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Optional, Protocol, Tuple, Union, runtime_checkable

Number = Union[int, float]


class MultiplicationMode(Enum):
    """
    Batched multiplication semantics selected by the *left* operand.

    Members
    -------
    ONLY_SAME_DEPTH
        Depth slices are multiplied pairwise; both operands must share the
        same depth.
    LAST_LEVEL
        A depth-1 left operand is multiplied against only the last depth slice
        of the right operand, producing a depth-1 result. This broadcasts one
        shared weight matrix against the last feature layer of a
        multi-channel activation.
    """

    ONLY_SAME_DEPTH = "only_same_depth"
    LAST_LEVEL = "last_level"


@runtime_checkable
class ITensor(Protocol):
    """
    Domain-level interface of the 4D `(batch, depth, row, column)` tensor.

    Notes
    -----
    - All four dimensions are fixed at construction.
    - `mode` is the only mutable attribute and only affects how the tensor
      behaves as the left operand of a multiplication.
    """

    @property
    def batch_size(self) -> int: ...

    @property
    def depth(self) -> int: ...

    @property
    def rows(self) -> int: ...

    @property
    def columns(self) -> int: ...

    @property
    def shape(self) -> Tuple[int, int, int, int]:
        """
        Return `(batch_size, depth, rows, columns)`.
        """
        ...

    @property
    def mode(self) -> MultiplicationMode: ...

    def __getitem__(self, index: Tuple[int, int, int, int]) -> float:
        """
        Bounds-checked element read.

        Raises
        ------
        IndexError
            If any of the four indices is outside its dimension.
        """
        ...

    def __matmul__(self, other: "ITensor") -> "ITensor": ...

    def __mul__(self, other: Number) -> "ITensor": ...

    def __rmul__(self, other: Number) -> "ITensor": ...

    def __add__(self, other: "ITensor") -> "ITensor": ...

    def __sub__(self, other: "ITensor") -> "ITensor": ...

    def transpose(self) -> "ITensor": ...

    def reshape(
        self, batch_size: int, depth: int, rows: int, columns: int
    ) -> "ITensor": ...

    def sum_rows(self) -> "ITensor": ...

    def sum_batch(self) -> "ITensor": ...

    def apply_function(
        self,
        func: Callable[..., Any],
        aux: Optional["ITensor"] = None,
        *,
        check_shape: bool = True,
        vectorized: bool = False,
        parallel: bool = True,
    ) -> "ITensor":
        """
        Map every element through `func` (optionally paired with `aux`).
        """
        ...

    def zero_out(self) -> "ITensor": ...

    def to_numpy(self) -> Any:
        """
        Return a copy of the data as a 4D NumPy array.
        """
        ...
