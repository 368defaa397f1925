"""
Input layer.

`InputLayer` pins the per-item input shape of a network. It is the identity
in both directions and owns no parameters.
"""

from __future__ import annotations

from typing import Any, Dict

from ...domain._layer import LayerGradients
from ...domain._shape import Shape
from .._layer import Layer
from ..module._serialization_core import register_layer
from ..tensor import Tensor


@register_layer()
class InputLayer(Layer):
    """
    Identity layer declaring the network input shape.

    Parameters
    ----------
    depth, rows, columns : int
        Per-item input shape. All must be strictly positive.
    """

    def __init__(self, depth: int, rows: int, columns: int) -> None:
        if depth is None or rows is None or columns is None:
            raise ValueError("InputLayer requires depth, rows and columns")
        super().__init__(depth, rows, columns)

    def _compute_output_shape(self, input_shape: Shape) -> Shape:
        return input_shape

    def _forward(self, x: Tensor) -> Tensor:
        return x

    def _backward(self, grad_out: Tensor) -> LayerGradients:
        return LayerGradients(grad_out)

    def get_config(self) -> Dict[str, Any]:
        d, r, c = self.input_shape.as_tuple()
        return {"depth": d, "rows": r, "columns": c}
