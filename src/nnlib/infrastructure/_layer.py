"""
Infrastructure layer base class.

This module provides a concrete `Layer` implementation that satisfies the
domain-level `ILayer` protocol. It implements the lifecycle shared by every
layer of a sequential network:

- an optionally partial input shape that can be declared up front
  (`set_input_shape`) or inferred from the preceding layer
  (`infer_input_shape`),
- a one-way transition from *uncompiled* to *compiled* (`compile`), after
  which the shape is locked and parameters are allocated,
- shape checks on entry to `forward_pass` / `backward_pass`,
- the forward-then-backward ordering flag.

Subclasses implement `_compute_output_shape`, `_forward` and `_backward`, and
may hook `_on_compile` to allocate parameters.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..domain._errors import OrderingError, TensorShapeError
from ..domain._layer import ILayer, LayerGradients
from ..domain._shape import OptionalDim, Shape
from .tensor import Tensor


def _check_dim(name: str, value: OptionalDim) -> OptionalDim:
    if value is None:
        return None
    if int(value) <= 0:
        raise ValueError(f"{name} must be > 0, got {value}")
    return int(value)


class Layer(ILayer):
    """
    Base class for layers.

    Parameters
    ----------
    depth, rows, columns : Optional[int], optional
        Declared input shape components. Unknown components stay None until
        inferred from the preceding layer.

    Raises
    ------
    ValueError
        If a declared component is not strictly positive.
    """

    def __init__(
        self,
        depth: OptionalDim = None,
        rows: OptionalDim = None,
        columns: OptionalDim = None,
    ) -> None:
        self._in_depth = _check_dim("depth", depth)
        self._in_rows = _check_dim("rows", rows)
        self._in_columns = _check_dim("columns", columns)
        self._output_shape: Optional[Shape] = None
        self._compiled = False
        self._forward_performed = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def compiled(self) -> bool:
        return self._compiled

    @property
    def forward_performed(self) -> bool:
        return self._forward_performed

    @property
    def has_input_shape(self) -> bool:
        """True once all three input shape components are known."""
        return None not in (self._in_depth, self._in_rows, self._in_columns)

    @property
    def input_shape(self) -> Shape:
        """
        The fully known input shape.

        Raises
        ------
        OrderingError
            If any component is still unknown.
        """
        if not self.has_input_shape:
            raise OrderingError(
                f"{self.name}: input shape is not fully known "
                f"(depth={self._in_depth}, rows={self._in_rows}, "
                f"columns={self._in_columns})"
            )
        return Shape(self._in_depth, self._in_rows, self._in_columns)

    @property
    def output_shape(self) -> Shape:
        """
        The output shape, computed from the input shape until compiled.
        """
        if self._output_shape is not None:
            return self._output_shape
        return self._compute_output_shape(self.input_shape)

    # ------------------------------------------------------------------
    # Shape declaration
    # ------------------------------------------------------------------
    def _ensure_mutable(self, op: str) -> None:
        if self._compiled:
            raise OrderingError(f"{self.name}.{op}: the layer is already compiled")

    def set_input_shape(
        self,
        depth: OptionalDim = None,
        rows: OptionalDim = None,
        columns: OptionalDim = None,
    ) -> None:
        """
        Declare input shape components; None leaves a component unchanged.

        Raises
        ------
        OrderingError
            If the layer is compiled.
        """
        self._ensure_mutable("set_input_shape")
        if depth is not None:
            self._in_depth = _check_dim("depth", depth)
        if rows is not None:
            self._in_rows = _check_dim("rows", rows)
        if columns is not None:
            self._in_columns = _check_dim("columns", columns)

    def infer_input_shape(self, previous: Shape) -> None:
        """
        Adopt the preceding layer's output shape as this layer's input shape.

        Components that are already known must agree with `previous`.

        Raises
        ------
        OrderingError
            If the layer is compiled.
        TensorShapeError
            If a declared component conflicts with `previous`.
        """
        self._ensure_mutable("infer_input_shape")
        declared = (self._in_depth, self._in_rows, self._in_columns)
        for label, mine, theirs in zip(
            ("depth", "rows", "columns"), declared, previous.as_tuple()
        ):
            if mine is not None and mine != theirs:
                raise TensorShapeError(
                    f"{self.name}.infer_input_shape",
                    f"declared {label} {mine} conflicts with the previous "
                    f"layer's output {previous}",
                )
        self._in_depth, self._in_rows, self._in_columns = previous.as_tuple()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def compile(self) -> None:
        """
        Lock the input shape and allocate parameters.

        Compiling an already compiled layer is a no-op.

        Raises
        ------
        OrderingError
            If the input shape is not fully known.
        """
        if self._compiled:
            return
        shape = self.input_shape
        self._on_compile(shape)
        self._output_shape = self._compute_output_shape(shape)
        self._compiled = True

    def _check_shape(self, tensor: Tensor, forward: bool = True) -> None:
        expected = self.input_shape if forward else self.output_shape
        got = (tensor.depth, tensor.rows, tensor.columns)
        if got != expected.as_tuple():
            op = "forward_pass" if forward else "backward_pass"
            raise TensorShapeError(
                f"{self.name}.{op}",
                f"expected per-item shape {expected}, got "
                f"{got[0]}x{got[1]}x{got[2]}",
            )

    def forward_pass(self, x: Tensor) -> Tensor:
        """
        Run the layer on a batch.

        Raises
        ------
        OrderingError
            If the layer is not compiled.
        TensorShapeError
            If `x` does not match the input shape.
        """
        if not self._compiled:
            raise OrderingError(f"{self.name}.forward_pass: the layer is not compiled")
        self._check_shape(x, forward=True)
        out = self._forward(x)
        self._forward_performed = True
        return out

    def backward_pass(self, grad_out: Tensor) -> LayerGradients:
        """
        Backpropagate the gradient with respect to this layer's output.

        Raises
        ------
        OrderingError
            If the layer is not compiled or no forward pass precedes the call.
        TensorShapeError
            If `grad_out` does not match the output shape.
        """
        if not self._compiled:
            raise OrderingError(f"{self.name}.backward_pass: the layer is not compiled")
        if not self._forward_performed:
            raise OrderingError(
                f"{self.name}.backward_pass called without a preceding forward_pass"
            )
        self._check_shape(grad_out, forward=False)
        self._forward_performed = False
        return self._backward(grad_out)

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------
    def _on_compile(self, input_shape: Shape) -> None:
        pass

    def _compute_output_shape(self, input_shape: Shape) -> Shape:
        raise NotImplementedError

    def _forward(self, x: Tensor) -> Tensor:
        raise NotImplementedError

    def _backward(self, grad_out: Tensor) -> LayerGradients:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def get_config(self) -> Dict[str, Any]:
        """
        Constructor arguments needed to rebuild the layer (without parameters).
        """
        return {}

    @property
    def parameter_count(self) -> int:
        return 0

    def __repr__(self) -> str:
        shape = (self._in_depth, self._in_rows, self._in_columns)
        return f"{self.name}(input={shape}, compiled={self._compiled})"
