"""
Fully connected layer with input-dimension inference.

This module defines `DenseLayer`, computing

    y = activation(W @ x + b)

for every batch item, where `x` is a column vector of `in_size` rows, `W` is
an `(out_size, in_size)` weight matrix and `b` an `(out_size, 1)` bias.

Users specify only `out_size` at construction time. The corresponding
`in_size` is inferred from the preceding layer when the layer is added to a
network, and parameters are allocated at `compile`.

Design Notes
------------
- Weights are stored as a `(1, 1, out, in)` tensor in `LAST_LEVEL` mode. For
  a multi-channel input `(D, in, 1)` with `D > 1` the weights read only the
  last depth slice, and the upstream gradient is zero in every other slice.
- The input must be a column vector per depth slice (`columns == 1`); this is
  checked at compile time.
- Parameter gradients are averaged over the batch. The loss gradient that
  reaches the layer is per item, so the optimizer receives the gradient of the
  batch-mean loss.
- Parameters are replaced (never mutated) by `assign_parameters`.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

import numpy as np

from ...domain._errors import OrderingError, TensorShapeError
from ...domain._layer import LayerGradients
from ...domain._shape import Shape
from ...domain._tensor import MultiplicationMode
from .._activations import Activation, create_activation
from .._layer import Layer
from ..module._serialization_core import register_layer
from ..tensor import Tensor
from ..utils.weight_initializer import WeightInitializer, resolve_initializer

ActivationArg = Union[Activation, str, None]
InitializerArg = Union[WeightInitializer, str, None]


def _resolve_activation(activation: ActivationArg) -> Activation:
    if activation is None or isinstance(activation, str):
        return create_activation(activation)
    if isinstance(activation, Activation):
        return activation
    raise TypeError(
        f"activation must be an Activation, a registered name or None, "
        f"got {type(activation)!r}"
    )


@register_layer()
class DenseLayer(Layer):
    """
    Fully connected layer.

    Parameters
    ----------
    out_size : int
        Number of output units.
    activation : Activation | str | None, optional
        Activation applied to `W @ x + b`. Defaults to `LinearActivation`.
    weight_initializer : WeightInitializer | str | None, optional
        Defaults to `"xavier_uniform"`.
    bias_initializer : WeightInitializer | str | None, optional
        Defaults to `"zeros"`.
    in_size : Optional[int], optional
        Number of input rows. If None, inferred from the preceding layer.

    Raises
    ------
    ValueError
        If `out_size` or `in_size` is not a positive integer.
    """

    def __init__(
        self,
        out_size: int,
        activation: ActivationArg = None,
        weight_initializer: InitializerArg = None,
        bias_initializer: InitializerArg = None,
        in_size: Optional[int] = None,
    ) -> None:
        if int(out_size) <= 0:
            raise ValueError(f"out_size must be a positive integer, got {out_size}")
        if in_size is not None and int(in_size) <= 0:
            raise ValueError(f"in_size must be a positive integer, got {in_size}")
        super().__init__(
            None,
            None if in_size is None else int(in_size),
            None if in_size is None else 1,
        )
        self.out_size = int(out_size)
        self.activation = _resolve_activation(activation)
        self._weight_init = resolve_initializer(weight_initializer, "xavier_uniform")
        self._bias_init = resolve_initializer(bias_initializer, "zeros")

        self._weights: Optional[Tensor] = None
        self._bias: Optional[Tensor] = None
        self._last_input: Optional[Tensor] = None

    @classmethod
    def from_parameters(
        cls,
        weights: Tensor,
        bias: Optional[Tensor] = None,
        activation: ActivationArg = None,
    ) -> "DenseLayer":
        """
        Build a layer around existing parameters.

        Parameters
        ----------
        weights : Tensor
            `(1, 1, out, in)` weight matrix.
        bias : Optional[Tensor], optional
            `(1, 1, out, 1)` bias. If None, a zero bias is used.
        activation : Activation | str | None, optional
            Defaults to `LinearActivation`.

        Raises
        ------
        ValueError
            If `weights` is not a single matrix, or `bias` does not match it.
        """
        if weights is None:
            raise ValueError("DenseLayer.from_parameters requires weights")
        if weights.batch_size != 1 or weights.depth != 1:
            raise ValueError(
                f"weights must be a single (1, 1, out, in) matrix, got shape {weights.shape}"
            )
        out_size, in_size = weights.rows, weights.columns
        if bias is None:
            bias = Tensor.zeros(1, 1, out_size, 1)
        elif bias.shape != (1, 1, out_size, 1):
            raise ValueError(
                f"bias shape {bias.shape} does not match weights with {out_size} rows"
            )

        layer = cls(out_size, activation=activation, in_size=in_size)
        layer.load_parameters(weights, bias)
        return layer

    # ------------------------------------------------------------------
    # Trainable capability
    # ------------------------------------------------------------------
    @property
    def in_size(self) -> Optional[int]:
        return self._in_rows

    @property
    def weights(self) -> Tensor:
        if self._weights is None:
            raise OrderingError(f"{self.name}: parameters are not allocated before compile")
        return self._weights

    @property
    def bias(self) -> Tensor:
        if self._bias is None:
            raise OrderingError(f"{self.name}: parameters are not allocated before compile")
        return self._bias

    def assign_parameters(self, weights: Tensor, bias: Tensor) -> None:
        """
        Replace the weights and bias.

        Raises
        ------
        TensorShapeError
            If either tensor's shape differs from the current parameters.
        """
        current_w, current_b = self.weights, self.bias
        if weights.shape != current_w.shape:
            raise TensorShapeError(
                f"{self.name}.assign_parameters",
                f"weights shape {weights.shape} does not match {current_w.shape}",
            )
        if bias.shape != current_b.shape:
            raise TensorShapeError(
                f"{self.name}.assign_parameters",
                f"bias shape {bias.shape} does not match {current_b.shape}",
            )
        self._weights = weights.with_mode(MultiplicationMode.LAST_LEVEL)
        self._bias = bias

    def load_parameters(self, weights: Tensor, bias: Tensor) -> None:
        """
        Install restored parameters before `compile`, which then keeps them.

        Raises
        ------
        OrderingError
            If the layer is already compiled.
        TensorShapeError
            If the tensors do not match `(1, 1, out, in)` / `(1, 1, out, 1)`.
        """
        self._ensure_mutable("load_parameters")
        expected_w = (1, 1, self.out_size, self.in_size)
        if weights.shape != expected_w:
            raise TensorShapeError(
                f"{self.name}.load_parameters",
                f"weights shape {weights.shape} does not match {expected_w}",
            )
        if bias.shape != (1, 1, self.out_size, 1):
            raise TensorShapeError(
                f"{self.name}.load_parameters",
                f"bias shape {bias.shape} does not match {(1, 1, self.out_size, 1)}",
            )
        self._weights = weights.with_mode(MultiplicationMode.LAST_LEVEL)
        self._bias = bias

    @property
    def parameter_count(self) -> int:
        in_size = self.in_size or 0
        return self.out_size * in_size + self.out_size

    # ------------------------------------------------------------------
    # Layer hooks
    # ------------------------------------------------------------------
    def _compute_output_shape(self, input_shape: Shape) -> Shape:
        return Shape(1, self.out_size, 1)

    def _on_compile(self, input_shape: Shape) -> None:
        if input_shape.columns != 1:
            raise TensorShapeError(
                f"{self.name}.compile",
                f"input must be a column vector per depth slice, got {input_shape}",
            )
        if self._weights is None:
            self._weights = self._weight_init(
                1, 1, self.out_size, input_shape.rows
            ).with_mode(MultiplicationMode.LAST_LEVEL)
            self._bias = self._bias_init(1, 1, self.out_size, 1)

    def _forward(self, x: Tensor) -> Tensor:
        self._last_input = x
        return self.activation.forward(self.weights @ x + self.bias)

    def _backward(self, grad_out: Tensor) -> LayerGradients:
        x = self._last_input
        self._last_input = None
        batch = grad_out.batch_size

        g = self.activation.backward(grad_out)
        dw = (g.with_mode(MultiplicationMode.LAST_LEVEL) @ x.transpose()).sum_batch()
        db = g.sum_rows().sum_batch()
        upstream = self.weights.transpose() @ g

        depth = self.input_shape.depth
        if depth > 1:
            spread = np.zeros((batch, depth, self.input_shape.rows, 1), dtype=np.float64)
            spread[:, depth - 1] = upstream.to_numpy()[:, 0]
            upstream = Tensor.from_numpy(spread)

        return LayerGradients(upstream, dw * (1.0 / batch), db * (1.0 / batch))

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def get_config(self) -> Dict[str, Any]:
        return {
            "out_size": self.out_size,
            "activation": self.activation.name,
            "in_size": self.in_size,
        }

    def __repr__(self) -> str:
        return (
            f"{self.name}(in_size={self.in_size}, out_size={self.out_size}, "
            f"activation={self.activation.name})"
        )
