"""
Concrete Tensor implementation (NumPy backend).

This module provides the concrete `Tensor` that satisfies the domain-level
`ITensor` protocol: a 4D `(batch, depth, row, column)` array of doubles stored
in one contiguous row-major NumPy buffer.

Design notes
------------
- Tensors are values. Dimensions are fixed at construction, the buffer is
  never written after construction, and every operator allocates a new
  result. Tensors can therefore share buffers freely (see `with_mode`).
- The operator surface is split into mixins (arithmetic, memory, reduction,
  unary) that live under `mixins/`; this class owns construction, element
  access and conversion.
- `mode` is the only mutable attribute. It selects the batched
  multiplication semantics when the tensor is the left operand of `@`.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence, Tuple

import numpy as np
from typing_extensions import Self

from ...domain._tensor import ITensor, MultiplicationMode
from ._parallel import parallel_for
from .mixins.arithmetic import TensorMixinArithmetic
from .mixins.memory import TensorMixinMemory
from .mixins.reduction import TensorMixinReduction
from .mixins.unary import TensorMixinUnary


def _check_dims(op: str, dims: Sequence[int]) -> Tuple[int, int, int, int]:
    """
    Validate four positive tensor dimensions.

    Raises
    ------
    ValueError
        If any dimension is not strictly positive.
    """
    if len(dims) != 4:
        raise ValueError(f"{op}: expected 4 dimensions, got {len(dims)}")
    out = tuple(int(d) for d in dims)
    if any(d <= 0 for d in out):
        raise ValueError(
            f"{op}: dimensions must be > 0, got "
            f"{out[0]}x{out[1]}x{out[2]}x{out[3]}"
        )
    return out  # type: ignore[return-value]


class Tensor(
    TensorMixinArithmetic,
    TensorMixinMemory,
    TensorMixinReduction,
    TensorMixinUnary,
    ITensor,
):
    """
    4D batched tensor of doubles.

    Parameters
    ----------
    batch_size, depth, rows, columns : int
        Tensor dimensions. All must be strictly positive.
    initializer : Optional[Callable[[], float]], optional
        Zero-argument callable drawn once per element, in row-major order.
        If None, the tensor is zero-filled.
    mode : MultiplicationMode, optional
        Batched multiplication semantics when used as the left operand.

    Raises
    ------
    ValueError
        If any dimension is not strictly positive.

    Notes
    -----
    Element `(b, d, r, c)` lives at flat offset
    `b * depth_rows_columns + d * rows_columns + r * columns + c`.
    `__array_ufunc__` is disabled so that NumPy scalars on the left of `*`
    defer to `Tensor.__rmul__`.
    """

    __array_ufunc__ = None

    def __init__(
        self,
        batch_size: int,
        depth: int,
        rows: int,
        columns: int,
        initializer: Optional[Callable[[], float]] = None,
        *,
        mode: MultiplicationMode = MultiplicationMode.ONLY_SAME_DEPTH,
    ) -> None:
        dims = _check_dims("Tensor", (batch_size, depth, rows, columns))
        if initializer is None:
            data = np.zeros(dims, dtype=np.float64)
        else:
            n = dims[0] * dims[1] * dims[2] * dims[3]
            data = np.fromiter(
                (initializer() for _ in range(n)), dtype=np.float64, count=n
            ).reshape(dims)
        self._data = data
        self._mode = MultiplicationMode(mode)

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------
    @classmethod
    def _wrap(
        cls,
        data: np.ndarray,
        mode: MultiplicationMode = MultiplicationMode.ONLY_SAME_DEPTH,
    ) -> Self:
        """
        Adopt a freshly allocated 4D float64 buffer without copying.

        Internal: the caller must own `data` and never write to it again.
        """
        t = cls.__new__(cls)
        t._data = data
        t._mode = mode
        return t

    @classmethod
    def zeros(cls, batch_size: int, depth: int, rows: int, columns: int) -> Self:
        """Return a zero-filled tensor."""
        return cls(batch_size, depth, rows, columns)

    @classmethod
    def from_numpy(
        cls,
        arr: Any,
        *,
        mode: MultiplicationMode = MultiplicationMode.ONLY_SAME_DEPTH,
    ) -> Self:
        """
        Build a tensor from a 4D array-like (the data is copied).

        Raises
        ------
        ValueError
            If `arr` is not 4-dimensional or has an empty dimension.
        """
        a = np.array(arr, dtype=np.float64, copy=True, order="C")
        if a.ndim != 4:
            raise ValueError(f"Tensor.from_numpy: expected a 4D array, got ndim={a.ndim}")
        _check_dims("Tensor.from_numpy", a.shape)
        return cls._wrap(a, MultiplicationMode(mode))

    @classmethod
    def from_array(cls, nested: Any) -> Self:
        """
        Build a tensor from a 4D nested literal `[[[[...]]]]`.

        Raises
        ------
        ValueError
            If the literal is ragged or not 4-dimensional.
        """
        try:
            a = np.array(nested, dtype=np.float64)
        except ValueError as e:
            raise ValueError(f"Tensor.from_array: ragged literal ({e})") from e
        return cls.from_numpy(a)

    @classmethod
    def from_batch_items(
        cls,
        depth: int,
        rows: int,
        columns: int,
        items: Sequence[Sequence[float]],
    ) -> Self:
        """
        Build a tensor from one flat row-major sequence per batch item.

        Parameters
        ----------
        depth, rows, columns : int
            Per-item dimensions.
        items : Sequence[Sequence[float]]
            Batch items; each must hold exactly `depth * rows * columns` values.

        Raises
        ------
        ValueError
            If `items` is empty or any item has the wrong length.
        """
        if len(items) == 0:
            raise ValueError("Tensor.from_batch_items: at least one batch item is required")
        dims = _check_dims("Tensor.from_batch_items", (len(items), depth, rows, columns))
        item_size = dims[1] * dims[2] * dims[3]

        for i, item in enumerate(items):
            if len(item) != item_size:
                raise ValueError(
                    f"Tensor.from_batch_items: item {i} holds {len(item)} values, "
                    f"expected {item_size} to fill a {depth}x{rows}x{columns} tensor"
                )

        out = np.empty((dims[0], item_size), dtype=np.float64)

        def _copy(start: int, stop: int) -> None:
            for b in range(start, stop):
                out[b] = np.asarray(items[b], dtype=np.float64)

        parallel_for(dims[0], _copy)
        return cls._wrap(out.reshape(dims))

    # ------------------------------------------------------------------
    # Dimensions
    # ------------------------------------------------------------------
    @property
    def batch_size(self) -> int:
        return self._data.shape[0]

    @property
    def depth(self) -> int:
        return self._data.shape[1]

    @property
    def rows(self) -> int:
        return self._data.shape[2]

    @property
    def columns(self) -> int:
        return self._data.shape[3]

    @property
    def rows_columns(self) -> int:
        return self.rows * self.columns

    @property
    def depth_rows_columns(self) -> int:
        return self.depth * self.rows_columns

    @property
    def shape(self) -> Tuple[int, int, int, int]:
        """
        Return `(batch_size, depth, rows, columns)`.
        """
        return tuple(self._data.shape)  # type: ignore[return-value]

    @property
    def size(self) -> int:
        """Total number of elements."""
        return int(self._data.size)

    @property
    def mode(self) -> MultiplicationMode:
        return self._mode

    @mode.setter
    def mode(self, value: MultiplicationMode) -> None:
        self._mode = MultiplicationMode(value)

    def with_mode(self, mode: MultiplicationMode) -> Self:
        """
        Return a tensor sharing this tensor's buffer with a different mode.
        """
        return type(self)._wrap(self._data, MultiplicationMode(mode))

    # ------------------------------------------------------------------
    # Element access / conversion
    # ------------------------------------------------------------------
    def __getitem__(self, index: Tuple[int, int, int, int]) -> float:
        """
        Bounds-checked read of element `(b, d, r, c)`.

        Raises
        ------
        IndexError
            If any index is negative or not smaller than its dimension.
        TypeError
            If `index` is not a 4-tuple.
        """
        if not isinstance(index, tuple) or len(index) != 4:
            raise TypeError("Tensor indices must be a (batch, depth, row, column) tuple")
        for i, dim, name in zip(index, self._data.shape, ("batch", "depth", "row", "column")):
            if not 0 <= int(i) < dim:
                raise IndexError(f"{name} index {i} out of range [0, {dim})")
        b, d, r, c = (int(i) for i in index)
        return float(self._data[b, d, r, c])

    def to_numpy(self) -> np.ndarray:
        """
        Return a copy of the data as a `(batch, depth, rows, columns)` array.
        """
        return self._data.copy()

    def __repr__(self) -> str:
        b, d, r, c = self.shape
        return f"Tensor(shape={b}x{d}x{r}x{c}, mode={self._mode.name})"

    def __str__(self) -> str:
        lines = []
        for b in range(self.batch_size):
            lines.append(f"Batch {b} :")
            for d in range(self.depth):
                lines.append(f"Depth {d} :")
                for r in range(self.rows):
                    lines.append(",".join(f"{v:3g}" for v in self._data[b, d, r]))
        return "\n".join(lines) + "\n"
