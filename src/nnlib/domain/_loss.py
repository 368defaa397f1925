"""
Loss interface definitions.

A loss reduces a `(prediction, target)` pair to a scalar averaged over the
batch and seeds backpropagation with the gradient of the per-item loss with
respect to the prediction.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ._tensor import ITensor


@runtime_checkable
class ILoss(Protocol):
    """
    Domain-level loss contract.

    Notes
    -----
    - `forward` caches the `(prediction, target)` pair.
    - `backward` consumes the cached pair; calling it without a preceding
      `forward` raises `OrderingError`.
    """

    def forward(self, prediction: ITensor, target: ITensor) -> float:
        """
        Compute the loss averaged over the batch.
        """
        ...

    def backward(self) -> ITensor:
        """
        Return the gradient tensor shaped like the last prediction.
        """
        ...
