"""
Tensor memory / layout mixin.

This module defines `TensorMixinMemory`, which provides the layout-changing
operations of the concrete `Tensor`: per-slice transpose, row-major reshape
and zero-filled copies. None of these operations alter element values.
"""

from __future__ import annotations

from abc import ABC

import numpy as np

from .....domain._tensor import ITensor
from ..._parallel import parallel_for


class TensorMixinMemory(ABC):
    """
    Mixin providing layout operations for tensors.
    """

    def transpose(self: ITensor) -> "ITensor":
        """
        Swap rows and columns of every `(batch, depth)` slice.

        Returns
        -------
        ITensor
            A new `(batch, depth, columns, rows)` tensor.
        """
        src = self._data
        b, d, r, c = src.shape
        out = np.empty((b, d, c, r), dtype=np.float64)

        def _items(start: int, stop: int) -> None:
            out[start:stop] = src[start:stop].transpose(0, 1, 3, 2)

        parallel_for(b, _items, unit_size=d * r * c)
        return type(self)._wrap(out)

    def reshape(
        self: ITensor, batch_size: int, depth: int, rows: int, columns: int
    ) -> "ITensor":
        """
        Reinterpret the row-major element sequence with new dimensions.

        Raises
        ------
        ValueError
            If any dimension is negative, or the element count differs.
        """
        dims = (int(batch_size), int(depth), int(rows), int(columns))
        if any(v < 0 for v in dims):
            raise ValueError(f"reshape: dimensions must be >= 0, got {dims}")
        count = dims[0] * dims[1] * dims[2] * dims[3]
        if count != self._data.size:
            raise ValueError(
                f"reshape: cannot reshape {self._data.size} elements into "
                f"{dims[0]}x{dims[1]}x{dims[2]}x{dims[3]} ({count} elements)"
            )
        return type(self)._wrap(self._data.reshape(dims).copy())

    def zero_out(self: ITensor) -> "ITensor":
        """
        Return a zero-filled tensor of the same shape.
        """
        return type(self)._wrap(np.zeros_like(self._data))
