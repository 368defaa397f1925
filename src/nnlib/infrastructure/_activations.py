"""
Activation functions applied by layers to their pre-activation output.

This module provides the concrete activations used by `DenseLayer`:

- `LinearActivation`: identity in both directions.
- `ReLU`: zeroes negative inputs; caches the last forward input so the
  backward pass can mask the gradient.
- `Softmax`: per batch item, numerically stable softmax over the rows of a
  column vector. Its backward pass is an identity because
  `SparseCategoricalCrossEntropy.backward` already returns the gradient with
  respect to the pre-softmax logits.

Every activation enforces the forward-then-backward ordering: `backward`
without a matching `forward` raises `OrderingError`, and `backward` consumes
the forward.

Activations are registered by type tag so that saved networks can rebuild
them (`register_activation` / `create_activation`).
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Type

import numpy as np

from ..domain._activation import IActivation
from ..domain._errors import OrderingError, UnsupportedOperationError
from .tensor import Tensor

_ACTIVATION_REGISTRY: Dict[str, Type["Activation"]] = {}


def register_activation(
    name: Optional[str] = None,
) -> Callable[[Type["Activation"]], Type["Activation"]]:
    """
    Decorator to register an Activation class under a type tag.
    """

    def deco(cls: Type["Activation"]) -> Type["Activation"]:
        key = name or cls.__name__
        _ACTIVATION_REGISTRY[key] = cls
        return cls

    return deco


def create_activation(name: Optional[str]) -> "Activation":
    """
    Instantiate a registered activation by type tag.

    `None` yields a `LinearActivation`.

    Raises
    ------
    ValueError
        If the tag is not registered.
    """
    if name is None:
        return LinearActivation()
    if name not in _ACTIVATION_REGISTRY:
        raise ValueError(
            f"Unknown activation type '{name}'. Register it via @register_activation."
        )
    return _ACTIVATION_REGISTRY[name]()


class Activation(IActivation):
    """
    Base class of all activations.

    Subclasses implement `_forward` / `_backward`; the public `forward` /
    `backward` methods maintain the ordering flag.
    """

    def __init__(self) -> None:
        self._forward_performed = False

    @property
    def name(self) -> str:
        return type(self).__name__

    def forward(self, x: Tensor) -> Tensor:
        out = self._forward(x)
        self._forward_performed = True
        return out

    def backward(self, grad_out: Tensor) -> Tensor:
        if not self._forward_performed:
            raise OrderingError(
                f"{self.name}.backward called without a preceding forward"
            )
        self._forward_performed = False
        return self._backward(grad_out)

    def _forward(self, x: Tensor) -> Tensor:
        raise NotImplementedError

    def _backward(self, grad_out: Tensor) -> Tensor:
        raise NotImplementedError

    def get_config(self) -> Dict[str, Any]:
        return {}

    def __repr__(self) -> str:
        return f"{self.name}()"


@register_activation()
class LinearActivation(Activation):
    """
    Identity activation.
    """

    def _forward(self, x: Tensor) -> Tensor:
        return x

    def _backward(self, grad_out: Tensor) -> Tensor:
        return grad_out


@register_activation()
class ReLU(Activation):
    """
    Rectified linear unit: `relu(x) = max(0, x)`.

    The backward pass multiplies the incoming gradient by the indicator
    `x > 0` of the most recent forward input.
    """

    def __init__(self) -> None:
        super().__init__()
        self._cached_input: Optional[Tensor] = None

    def _forward(self, x: Tensor) -> Tensor:
        self._cached_input = x
        return x.apply_function(lambda v: np.maximum(v, 0.0), vectorized=True)

    def _backward(self, grad_out: Tensor) -> Tensor:
        cached = self._cached_input
        self._cached_input = None
        return grad_out.apply_function(
            lambda g, x: np.where(x > 0.0, g, 0.0), cached, vectorized=True
        )


@register_activation()
class Softmax(Activation):
    """
    Softmax over the rows of each batch item's column vector.

    Raises
    ------
    UnsupportedOperationError
        If the input is not a stack of column vectors (`depth == 1` and
        `columns == 1`).

    Notes
    -----
    Softmax may only terminate a network trained with
    `SparseCategoricalCrossEntropy`, which returns the fused gradient. The
    backward pass therefore forwards the gradient unchanged.
    """

    def _forward(self, x: Tensor) -> Tensor:
        if x.depth != 1 or x.columns != 1:
            raise UnsupportedOperationError(
                "softmax",
                f"expected a depth-1 column-vector input, got "
                f"{x.batch_size}x{x.depth}x{x.rows}x{x.columns}",
            )
        z = x.to_numpy()
        z = z - np.max(z, axis=2, keepdims=True)
        e = np.exp(z)
        return Tensor.from_numpy(e / np.sum(e, axis=2, keepdims=True))

    def _backward(self, grad_out: Tensor) -> Tensor:
        return grad_out
