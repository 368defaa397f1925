"""
Tensor memory operations.

Layout-changing operations on `TensorMixinMemory`:

- `transpose` : per-slice row/column swap
- `reshape`   : row-major reinterpretation with new dimensions
- `zero_out`  : same-shape zero tensor

Public API
----------
Only `TensorMixinMemory` is re-exported as part of the public interface.
"""

from ._base import TensorMixinMemory

__all__ = [
    TensorMixinMemory.__name__,
]
