"""
Reduction mixin for Tensor operations.

Reductions are computed with NumPy reductions over the whole buffer; no chunk
ever updates a shared accumulator.
"""

from __future__ import annotations

from abc import ABC

import numpy as np

from .....domain._tensor import ITensor


class TensorMixinReduction(ABC):
    """
    Mixin providing `sum_rows` and `sum_batch`.
    """

    def sum_rows(self: ITensor) -> "ITensor":
        """
        Sum every row across its columns.

        Returns
        -------
        ITensor
            A `(batch, depth, rows, 1)` tensor. If the tensor already has a
            single column, an equal copy is returned.
        """
        if self.columns == 1:
            return type(self)._wrap(self._data.copy())
        return type(self)._wrap(np.sum(self._data, axis=3, keepdims=True))

    def sum_batch(self: ITensor) -> "ITensor":
        """
        Sum all batch items elementwise.

        Returns
        -------
        ITensor
            A `(1, depth, rows, columns)` tensor. If the batch size is already
            1, an equal copy is returned.
        """
        if self.batch_size == 1:
            return type(self)._wrap(self._data.copy())
        return type(self)._wrap(np.sum(self._data, axis=0, keepdims=True))
