"""
Elementwise addition / subtraction kernel with limited broadcasting.

Two broadcast modes are supported for `left (+|-) right`:

1. Full match: equal depth, rows and columns. `right` may have batch size 1,
   in which case it is applied to every batch item of `left`.
2. Column broadcast: `right.columns == 1` with matching depth and rows. The
   single column of `right` is added to every column of `left` (bias add).

The result always has the shape of `left`.
"""

from __future__ import annotations

import numpy as np

from .....domain._errors import TensorShapeError, UnsupportedOperationError
from ..._parallel import parallel_for


def combine(
    op: str, left: np.ndarray, right: np.ndarray, *, subtract: bool = False
) -> np.ndarray:
    """
    Compute `left + right` (or `left - right`) under the supported broadcast modes.

    Parameters
    ----------
    op : str
        Operator name used in error messages.
    left, right : np.ndarray
        4D float64 buffers.
    subtract : bool, optional
        Subtract `right` instead of adding it.

    Raises
    ------
    TensorShapeError
        If rows, depth or columns are incompatible.
    UnsupportedOperationError
        If the batch sizes are neither equal nor broadcastable.
    """
    lb, ld, lr, lc = left.shape
    rb, rd, rr, rc = right.shape

    if lr != rr:
        raise TensorShapeError(op, f"row counts differ ({lr} vs {rr})")
    if rb != lb and rb != 1:
        raise UnsupportedOperationError(
            op,
            f"batch sizes {lb} and {rb} differ; only a right batch size of 1 "
            "is broadcast",
        )
    if ld != rd:
        raise TensorShapeError(op, f"depths differ ({ld} vs {rd})")
    if rc != lc and rc != 1:
        raise TensorShapeError(
            op,
            f"columns differ ({lc} vs {rc}) and the right operand is not a "
            "column vector",
        )

    rhs = np.broadcast_to(right, left.shape)
    out = np.empty_like(left)
    ufunc = np.subtract if subtract else np.add

    def _items(start: int, stop: int) -> None:
        ufunc(left[start:stop], rhs[start:stop], out=out[start:stop])

    parallel_for(lb, _items, unit_size=ld * lr * lc)
    return out
