"""
Domain-level optimizer contracts for nnlib.

This module defines the `IOptimizer` protocol, which specifies the minimal
interface required by the network orchestrator to train its layers.

Notes
-----
- Domain contracts are backend-agnostic and must not depend on NumPy or
  infrastructure implementations.
- Optimizers own one gradient accumulator slot per network layer, indexed by
  layer position. Slots must stay positionally aligned with the network's
  layer order: `add_layer` is called once per layer, in order.
- Accumulators are mutated across sequential `remember_gradient` calls; these
  calls must never run concurrently on the same optimizer.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence, runtime_checkable

from ._layer import ILayer
from ._tensor import ITensor


@runtime_checkable
class IOptimizer(Protocol):
    """
    Optimizer interface contract.

    Required methods
    ----------------
    - `add_layer()` registers the next layer (trainable or not).
    - `compile()` locks registration.
    - `remember_gradient()` accumulates one backward call's gradients.
    - `update_weights()` applies the accumulated gradients and resets them.
    """

    def add_layer(self, layer: ILayer) -> None: ...

    def compile(self) -> None: ...

    def remember_gradient(
        self,
        index: int,
        weights_gradient: Optional[ITensor],
        bias_gradient: Optional[ITensor],
    ) -> None: ...

    def update_weights(
        self, mini_batch_size: int, layers: Sequence[ILayer]
    ) -> None: ...
