"""
Activation interface definitions.

An activation is a stateless-between-batches transform applied by a layer to
its pre-activation output. It may cache its last forward input (e.g. ReLU) in
order to compute its local derivative during the backward pass.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ._tensor import ITensor


@runtime_checkable
class IActivation(Protocol):
    """
    Domain-level activation contract.

    Notes
    -----
    - `backward` must be preceded by a matching `forward`; implementations
      raise `OrderingError` otherwise.
    - `backward` returns the gradient with respect to the activation input.
    """

    def forward(self, x: ITensor) -> ITensor:
        """
        Apply the activation, possibly caching `x` for the backward pass.
        """
        ...

    def backward(self, grad_out: ITensor) -> ITensor:
        """
        Map the gradient w.r.t. the activation output to the gradient w.r.t.
        its input.
        """
        ...
