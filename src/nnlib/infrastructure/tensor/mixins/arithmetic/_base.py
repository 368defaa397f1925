"""
Arithmetic mixin defining the Tensor operators.

This module declares :class:`TensorMixinArithmetic`, the mixin providing
`@`, scalar `*`, `+` and `-` on the concrete `Tensor`. The numerical kernels
live in the sibling `_tensor_multiplication` and `_tensor_addition` modules;
the mixin validates operand types and wraps kernel output buffers into new
tensors.
"""

from __future__ import annotations

from numbers import Real
from typing import Union

from abc import ABC

from .....domain._tensor import ITensor
from ._tensor_addition import combine
from ._tensor_multiplication import batched_matmul, scale

Number = Union[int, float]


class TensorMixinArithmetic(ABC):
    """
    Mixin providing arithmetic operators for tensors.

    Notes
    -----
    - Every operator returns a new tensor; operands are never mutated.
    - The result of `@` is in `ONLY_SAME_DEPTH` mode regardless of the
      operands' modes.
    - `*` only accepts real scalars. Multiplying two tensors is a
      `TypeError`; use `@` for matrix products.
    """

    def __matmul__(self: ITensor, other: ITensor) -> "ITensor":
        """
        Batched matrix product `self @ other`.

        Raises
        ------
        TensorShapeError
            If `self.columns != other.rows`.
        UnsupportedOperationError
            If the batch or depth combination is not supported.
        """
        if not isinstance(other, TensorMixinArithmetic):
            return NotImplemented
        out = batched_matmul(self._data, other._data, self.mode)
        return type(self)._wrap(out)

    def __mul__(self: ITensor, other: Number) -> "ITensor":
        """
        Scale every element by a real scalar.
        """
        if isinstance(other, TensorMixinArithmetic):
            raise TypeError(
                "Tensor * Tensor is not supported; use '@' for matrix products"
            )
        if not isinstance(other, Real):
            return NotImplemented
        return type(self)._wrap(scale(self._data, float(other)))

    def __rmul__(self: ITensor, other: Number) -> "ITensor":
        return self.__mul__(other)

    def __add__(self: ITensor, other: ITensor) -> "ITensor":
        """
        Elementwise sum with batch broadcast or column-vector broadcast.

        Raises
        ------
        TensorShapeError
            If the operand shapes are incompatible.
        UnsupportedOperationError
            If `other.batch_size` is neither equal to `self.batch_size` nor 1.
        """
        if not isinstance(other, TensorMixinArithmetic):
            return NotImplemented
        return type(self)._wrap(combine("add", self._data, other._data))

    def __sub__(self: ITensor, other: ITensor) -> "ITensor":
        """
        Elementwise difference; broadcasting as in :meth:`__add__`.
        """
        if not isinstance(other, TensorMixinArithmetic):
            return NotImplemented
        return type(self)._wrap(
            combine("subtract", self._data, other._data, subtract=True)
        )
