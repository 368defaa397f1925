"""
Elementwise function-application mixin.

`apply_function` is the general elementwise map of the Tensor: every element
is passed through a unary function, or paired with the element at the same
flat position of an auxiliary tensor and passed through a binary function.
Activations and losses are expressed on top of it.
"""

from __future__ import annotations

from abc import ABC
from typing import Any, Callable, Optional

import numpy as np

from .....domain._errors import TensorShapeError
from .....domain._tensor import ITensor
from ..._parallel import parallel_for


class TensorMixinUnary(ABC):
    """
    Mixin providing `apply_function`.
    """

    def apply_function(
        self: ITensor,
        func: Callable[..., Any],
        aux: Optional[ITensor] = None,
        *,
        check_shape: bool = True,
        vectorized: bool = False,
        parallel: bool = True,
    ) -> "ITensor":
        """
        Map every element through `func`.

        Parameters
        ----------
        func : Callable
            `func(x)` when `aux` is None, otherwise `func(x, a)` where `x` is
            this tensor's element and `a` is `aux`'s element at the same flat
            position.
        aux : Optional[ITensor], optional
            Auxiliary operand for binary functions.
        check_shape : bool, optional
            If True (default), `aux` must have exactly this tensor's shape.
            If False, only the element counts must agree.
        vectorized : bool, optional
            If True, `func` operates on NumPy arrays and is called once per
            chunk instead of once per element.
        parallel : bool, optional
            If False, the whole buffer is processed by one inline call. Use
            this whenever `func` threads state (e.g. an accumulator) between
            calls.

        Returns
        -------
        ITensor
            A new tensor with this tensor's shape.

        Raises
        ------
        TensorShapeError
            If `aux` is incompatible with this tensor.
        """
        src = self._data.reshape(-1)
        other = None
        if aux is not None:
            if check_shape and tuple(aux.shape) != tuple(self.shape):
                raise TensorShapeError(
                    "apply_function",
                    f"auxiliary tensor shape {aux.shape} does not match {self.shape}",
                )
            other = aux._data.reshape(-1)
            if other.size != src.size:
                raise TensorShapeError(
                    "apply_function",
                    f"auxiliary tensor holds {other.size} elements, expected {src.size}",
                )

        out = np.empty_like(src)

        def _map(start: int, stop: int) -> None:
            x = src[start:stop]
            if vectorized:
                y = func(x) if other is None else func(x, other[start:stop])
                out[start:stop] = np.asarray(y, dtype=np.float64)
            elif other is None:
                out[start:stop] = np.fromiter(
                    (func(v) for v in x.tolist()), dtype=np.float64, count=stop - start
                )
            else:
                pairs = zip(x.tolist(), other[start:stop].tolist())
                out[start:stop] = np.fromiter(
                    (func(v, a) for v, a in pairs), dtype=np.float64, count=stop - start
                )

        parallel_for(src.size, _map, parallel=parallel)
        return type(self)._wrap(out.reshape(self._data.shape))
