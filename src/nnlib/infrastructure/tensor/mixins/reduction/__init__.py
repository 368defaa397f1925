"""
Reduction mixins for Tensor operations.

- ``sum_rows``  : collapse columns
- ``sum_batch`` : collapse the batch dimension

Public API
----------
- ``TensorMixinReduction``
"""

from ._base import TensorMixinReduction

__all__ = [
    TensorMixinReduction.__name__,
]
