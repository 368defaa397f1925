"""
Batched matrix multiplication and scalar scaling kernels.

`batched_matmul` implements the `@` operator for 4D tensors:

- `left.columns` must equal `right.rows`.
- Equal batch sizes, or a left batch size of 1 which is broadcast over every
  batch item of the right operand. A right batch size of 1 against a larger
  left batch is not supported.
- Equal depths multiply slice by slice. A depth-1 left operand in
  `LAST_LEVEL` mode multiplies only the *last* depth slice of the right
  operand and yields a depth-1 result.

The output rows of every `(batch, depth)` slice are independent, so the
product is split over row blocks of the left operand.
"""

from __future__ import annotations

import numpy as np

from .....domain._errors import TensorShapeError, UnsupportedOperationError
from .....domain._tensor import MultiplicationMode
from ..._parallel import parallel_for


def batched_matmul(
    left: np.ndarray, right: np.ndarray, mode: MultiplicationMode
) -> np.ndarray:
    """
    Multiply two `(batch, depth, rows, columns)` buffers.

    Parameters
    ----------
    left, right : np.ndarray
        4D float64 buffers.
    mode : MultiplicationMode
        Mode of the left operand.

    Returns
    -------
    np.ndarray
        Newly allocated `(out_batch, out_depth, left_rows, right_columns)`
        buffer.

    Raises
    ------
    TensorShapeError
        If the inner dimensions disagree.
    UnsupportedOperationError
        If the batch or depth combination is not one of the supported modes.
    """
    lb, ld, lr, lc = left.shape
    rb, rd, rr, rc = right.shape

    if lc != rr:
        raise TensorShapeError(
            "matmul",
            f"left columns ({lc}) must equal right rows ({rr}); "
            f"got {lb}x{ld}x{lr}x{lc} @ {rb}x{rd}x{rr}x{rc}",
        )

    if lb != rb and lb != 1:
        raise UnsupportedOperationError(
            "matmul",
            f"batch sizes {lb} and {rb} differ; only a left batch size of 1 "
            "is broadcast",
        )

    if ld == rd:
        rhs = right
    elif ld == 1 and mode is MultiplicationMode.LAST_LEVEL:
        rhs = right[:, rd - 1 : rd]
    else:
        raise UnsupportedOperationError(
            "matmul",
            f"depths {ld} and {rd} differ and the left operand is not a "
            "depth-1 LAST_LEVEL tensor",
        )

    out_b, out_d = rb, ld
    out = np.empty((out_b, out_d, lr, rc), dtype=np.float64)
    broadcast_left = lb == 1

    def _rows(start: int, stop: int) -> None:
        u = start
        while u < stop:
            s, r0 = divmod(u, lr)
            r1 = min(lr, r0 + (stop - u))
            b, d = divmod(s, out_d)
            lhs = left[0 if broadcast_left else b, d, r0:r1]
            np.matmul(lhs, rhs[b, d], out=out[b, d, r0:r1])
            u += r1 - r0

    parallel_for(out_b * out_d * lr, _rows, unit_size=lc * rc)
    return out


def scale(data: np.ndarray, factor: float) -> np.ndarray:
    """
    Return `data * factor` in a newly allocated buffer.
    """
    flat = data.reshape(-1)
    out = np.empty_like(flat)

    def _scale(start: int, stop: int) -> None:
        np.multiply(flat[start:stop], factor, out=out[start:stop])

    parallel_for(flat.size, _scale)
    return out.reshape(data.shape)
