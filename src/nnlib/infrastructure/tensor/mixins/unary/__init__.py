"""
Elementwise function-application mixin.

Public API
----------
- ``TensorMixinUnary``
"""

from ._base import TensorMixinUnary

__all__ = [
    TensorMixinUnary.__name__,
]
