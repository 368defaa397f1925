"""
Stochastic Gradient Descent (SGD) optimizer implementation.

This module provides the mini-batch SGD optimizer driven by `Network`. The
optimizer keeps one gradient accumulator pair per network layer, sums the
gradients of every backward call of a mini-batch into it, and applies the
averaged update once per mini-batch.

Update rule
-----------
For each trainable layer with weights ``W``, bias ``b`` and accumulators
``acc_W`` / ``acc_b`` summed over ``m`` backward calls:

    W <- W - (lr / m) * acc_W
    b <- b - (lr / m) * acc_b

Design notes
------------
- Slots are positional: `add_layer` is called once per network layer, in
  network order. Non-trainable layers get an empty (None) slot.
- Tensors are immutable, so the update builds new tensors and hands them to
  `layer.assign_parameters`; accumulators are replaced by `zero_out()` copies.
- Accumulators are mutated across sequential calls only: `remember_gradient`
  and `update_weights` must never run concurrently.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from ...domain._errors import OrderingError
from ...domain._layer import ILayer, is_trainable
from ...domain._optimizers import IOptimizer
from ..tensor import Tensor

Slot = Optional[Tuple[Tensor, Tensor]]


class SGD(IOptimizer):
    """
    Mini-batch Stochastic Gradient Descent.

    Parameters
    ----------
    learning_rate : float
        Step size. Must be > 0.

    Raises
    ------
    ValueError
        If ``learning_rate <= 0``.
    """

    def __init__(self, learning_rate: float) -> None:
        self.learning_rate = float(learning_rate)
        if self.learning_rate <= 0.0:
            raise ValueError(f"learning_rate must be > 0, got {self.learning_rate}")
        self._slots: List[Slot] = []
        self._compiled = False

    @property
    def compiled(self) -> bool:
        return self._compiled

    def __len__(self) -> int:
        return len(self._slots)

    def add_layer(self, layer: ILayer) -> None:
        """
        Register the next network layer.

        Raises
        ------
        OrderingError
            If the optimizer is already compiled.
        """
        if self._compiled:
            raise OrderingError("SGD.add_layer: the optimizer is already compiled")
        if is_trainable(layer):
            self._slots.append((layer.weights.zero_out(), layer.bias.zero_out()))
        else:
            self._slots.append(None)

    def compile(self) -> None:
        self._compiled = True

    def accumulated(self, index: int) -> Slot:
        """
        Return the `(acc_weights, acc_bias)` pair of a slot (None if empty).
        """
        return self._slots[index]

    def remember_gradient(
        self,
        index: int,
        weights_gradient: Optional[Tensor],
        bias_gradient: Optional[Tensor],
    ) -> None:
        """
        Add one backward call's gradients to the accumulator of slot `index`.

        Raises
        ------
        IndexError
            If `index` does not name a registered slot.
        ValueError
            If the slot is trainable and a gradient is missing.
        """
        if not 0 <= index < len(self._slots):
            raise IndexError(
                f"layer index {index} out of range [0, {len(self._slots)})"
            )
        slot = self._slots[index]
        if slot is None:
            return
        if weights_gradient is None or bias_gradient is None:
            raise ValueError(
                f"layer {index} is trainable; both weights and bias gradients are required"
            )
        acc_w, acc_b = slot
        self._slots[index] = (acc_w + weights_gradient, acc_b + bias_gradient)

    def update_weights(self, mini_batch_size: int, layers: Sequence[ILayer]) -> None:
        """
        Apply the averaged accumulated gradients and reset the accumulators.

        Parameters
        ----------
        mini_batch_size : int
            Number of backward calls accumulated since the last update.
        layers : Sequence[ILayer]
            The network's layers, in registration order.

        Raises
        ------
        ValueError
            If ``mini_batch_size <= 0`` or the layer count differs from the
            number of registered slots.
        """
        if mini_batch_size <= 0:
            raise ValueError(f"mini_batch_size must be > 0, got {mini_batch_size}")
        if len(layers) != len(self._slots):
            raise ValueError(
                f"expected {len(self._slots)} layers, got {len(layers)}"
            )

        step = self.learning_rate / float(mini_batch_size)
        for i, (layer, slot) in enumerate(zip(layers, self._slots)):
            if slot is None:
                continue
            acc_w, acc_b = slot
            layer.assign_parameters(
                layer.weights - acc_w * step,
                layer.bias - acc_b * step,
            )
            self._slots[i] = (acc_w.zero_out(), acc_b.zero_out())

    def __repr__(self) -> str:
        return f"SGD(learning_rate={self.learning_rate})"
