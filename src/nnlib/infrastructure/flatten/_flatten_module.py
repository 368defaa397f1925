"""
Flatten layer for nnlib.

`FlattenLayer` collapses every non-batch dimension of its input into a single
column vector so that a `DenseLayer` can follow spatial or multi-channel
data.

Shape semantics
---------------
Input:
    (N, D, R, C)

Output:
    (N, 1, D * R * C, 1)

The element order is the row-major order of the input; the backward pass
reshapes the gradient back to `(N, D, R, C)`.
"""

from __future__ import annotations

from typing import Any, Dict

from ...domain._layer import LayerGradients
from ...domain._shape import OptionalDim, Shape
from .._layer import Layer
from ..module._serialization_core import register_layer
from ..tensor import Tensor


@register_layer()
class FlattenLayer(Layer):
    """
    Flatten layer.

    Parameters
    ----------
    depth, rows, columns : Optional[int], optional
        Declared input shape; unknown components are inferred from the
        preceding layer.
    """

    def __init__(
        self,
        depth: OptionalDim = None,
        rows: OptionalDim = None,
        columns: OptionalDim = None,
    ) -> None:
        super().__init__(depth, rows, columns)

    def _compute_output_shape(self, input_shape: Shape) -> Shape:
        return Shape(1, input_shape.size, 1)

    def _forward(self, x: Tensor) -> Tensor:
        return x.reshape(x.batch_size, 1, self.input_shape.size, 1)

    def _backward(self, grad_out: Tensor) -> LayerGradients:
        d, r, c = self.input_shape.as_tuple()
        return LayerGradients(grad_out.reshape(grad_out.batch_size, d, r, c))

    def get_config(self) -> Dict[str, Any]:
        d, r, c = self.input_shape.as_tuple()
        return {"depth": d, "rows": r, "columns": c}
