"""
Arithmetic mixins for Tensor operations.

This package provides the arithmetic operator mixin and its kernels:

- batched matrix product (``__matmul__``)
- scalar scaling         (``__mul__`` / ``__rmul__``)
- addition               (``__add__``)
- subtraction            (``__sub__``)

Public API
----------
Only the mixin class is exported as part of the public interface:

- ``TensorMixinArithmetic``
"""

from ._base import TensorMixinArithmetic

__all__ = [
    TensorMixinArithmetic.__name__,
]
