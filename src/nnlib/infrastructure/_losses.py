"""
Loss functions.

This module implements the losses that terminate a `Network`:

- `MSELoss`:
    Per item, the sum of squared differences `sum((p - t)^2)`; the loss value
    is the mean over the batch. The gradient is `2 * (p - t)` per item.

- `SparseCategoricalCrossEntropy`:
    Per item, `-sum(t * ln(p))` with terms where `t == 0` contributing 0; the
    loss value is the mean over the batch. The gradient is `p - t`, the fused
    softmax + cross-entropy gradient with respect to the pre-softmax logits.

Batch scaling
-------------
The gradients returned by `backward` are per item and unscaled. `DenseLayer`
averages parameter gradients over the batch and the optimizer averages over
the number of accumulated backward calls, so each scaling is applied once.

Ordering
--------
`forward` caches the `(prediction, target)` pair; `backward` consumes it. A
second `backward` without a new `forward` raises `OrderingError`.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from ..domain._errors import OrderingError, TensorShapeError
from ..domain._loss import ILoss
from .tensor import Tensor


class Loss(ILoss):
    """
    Base class of the losses: operand validation and the cached pair.
    """

    def __init__(self) -> None:
        self._cached: Optional[Tuple[Tensor, Tensor]] = None

    @property
    def name(self) -> str:
        return type(self).__name__

    def forward(self, prediction: Tensor, target: Tensor) -> float:
        if tuple(prediction.shape) != tuple(target.shape):
            raise TensorShapeError(
                self.name,
                f"prediction shape {prediction.shape} does not match target "
                f"shape {target.shape}",
            )
        self._cached = (prediction, target)
        per_item = self._per_item(prediction.to_numpy(), target.to_numpy())
        return float(np.mean(per_item))

    def backward(self) -> Tensor:
        if self._cached is None:
            raise OrderingError(f"{self.name}.backward called without a preceding forward")
        prediction, target = self._cached
        self._cached = None
        return self._gradient(prediction, target)

    def _per_item(self, p: np.ndarray, t: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def _gradient(self, prediction: Tensor, target: Tensor) -> Tensor:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.name}()"


class MSELoss(Loss):
    """
    Squared error summed per item, averaged over the batch.
    """

    def _per_item(self, p: np.ndarray, t: np.ndarray) -> np.ndarray:
        diff = p - t
        return np.sum(diff * diff, axis=(1, 2, 3))

    def _gradient(self, prediction: Tensor, target: Tensor) -> Tensor:
        return (prediction - target) * 2.0


class SparseCategoricalCrossEntropy(Loss):
    """
    Cross-entropy between a probability prediction and a target distribution.

    Notes
    -----
    Only terms with a non-zero target enter the sum, so `0 * ln(0)` never
    occurs. A zero prediction for a non-zero target yields an infinite loss.
    """

    def _per_item(self, p: np.ndarray, t: np.ndarray) -> np.ndarray:
        mask = t != 0.0
        log_p = np.zeros_like(p)
        with np.errstate(divide="ignore"):
            np.log(p, out=log_p, where=mask)
        return -np.sum(t * log_p, axis=(1, 2, 3))

    def _gradient(self, prediction: Tensor, target: Tensor) -> Tensor:
        return prediction - target
