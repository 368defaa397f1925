"""
Layer interface definitions.

This module defines the domain-level contracts shared by every layer of a
sequential network:

- `ILayer`: the uniform compile / forward_pass / backward_pass capability set
  together with the declared input and output shapes.
- `ITrainable`: the additional capability of layers that own a weight matrix
  and a bias vector updated by an optimizer.
- `LayerGradients`: the triple emitted by every backward pass.

Structural typing is used instead of inheritance so optimizers and the network
orchestrator stay decoupled from concrete layer classes.
"""

from __future__ import annotations

from typing import NamedTuple, Optional, Protocol, runtime_checkable

from ._shape import Shape
from ._tensor import ITensor


class LayerGradients(NamedTuple):
    """
    Gradients produced by one layer's backward pass.

    Attributes
    ----------
    input_gradient : ITensor
        Gradient of the loss with respect to the layer input, passed upstream.
    weights_gradient : Optional[ITensor]
        Batch-averaged gradient with respect to the weights, or None for
        layers without trainable parameters.
    bias_gradient : Optional[ITensor]
        Batch-averaged gradient with respect to the bias, or None.
    """

    input_gradient: ITensor
    weights_gradient: Optional[ITensor] = None
    bias_gradient: Optional[ITensor] = None


@runtime_checkable
class ILayer(Protocol):
    """
    Domain-level layer contract.

    A layer moves from an *uncompiled* state (input shape may still be
    inferred) to a *compiled* state (shape locked, parameters allocated).
    """

    @property
    def compiled(self) -> bool: ...

    @property
    def input_shape(self) -> Shape: ...

    @property
    def output_shape(self) -> Shape: ...

    def compile(self) -> None: ...

    def forward_pass(self, x: ITensor) -> ITensor: ...

    def backward_pass(self, grad_out: ITensor) -> LayerGradients: ...


@runtime_checkable
class ITrainable(Protocol):
    """
    Capability of layers owning a weight matrix and a bias vector.
    """

    @property
    def weights(self) -> ITensor: ...

    @property
    def bias(self) -> ITensor: ...

    def assign_parameters(self, weights: ITensor, bias: ITensor) -> None:
        """
        Replace both parameter tensors (used by optimizers).
        """
        ...


def is_trainable(layer: object) -> bool:
    """
    Return True if `layer` provides the `ITrainable` capability.

    The check is made on the class so that parameter properties (which may be
    unavailable before compile) are never evaluated.
    """
    cls = type(layer)
    return all(
        hasattr(cls, attr) for attr in ("weights", "bias", "assign_parameters")
    )
