"""
In-memory dataset provider.

`ArrayDataset` serves mini-batches from NumPy arrays to `Network.fit` and
implements the `IDataset` contract:

- `epochs` and `batch_size` are configured before training starts and locked
  by the first `get_batch` call.
- Every call of `get_batch` returns the next `batch_size` items. The call that
  runs past the end of the training data returns the remainder, raises
  `end_epoch`, decrements `epochs` and rewinds. When `epochs` reaches 0,
  `end_training` is raised.
- `get_validation` returns the whole validation split as one batch and clears
  `end_epoch`; `get_test_set` returns the whole test split.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

import numpy as np

from ...domain._dataset import Batch, IDataset
from ...domain._errors import OrderingError
from ..tensor import Tensor

Split = Tuple[Any, Any]


def _as_items(name: str, arr: Any) -> np.ndarray:
    a = np.asarray(arr, dtype=np.float64)
    if a.ndim == 2:
        a = a.reshape(a.shape[0], 1, a.shape[1], 1)
    if a.ndim != 4:
        raise ValueError(
            f"{name} must have shape (N, D, R, C) or (N, F), got {a.shape}"
        )
    if a.shape[0] == 0:
        raise ValueError(f"{name} must contain at least one item")
    return np.ascontiguousarray(a)


def _as_split(name: str, split: Split) -> Tuple[np.ndarray, np.ndarray]:
    x, y = split
    xs = _as_items(f"{name} inputs", x)
    ys = _as_items(f"{name} labels", y)
    if xs.shape[0] != ys.shape[0]:
        raise ValueError(
            f"{name} inputs and labels differ in length ({xs.shape[0]} vs {ys.shape[0]})"
        )
    return xs, ys


class ArrayDataset(IDataset):
    """
    Dataset provider backed by NumPy arrays.

    Parameters
    ----------
    train_x, train_y : array-like
        Training inputs and labels, shaped `(N, D, R, C)` or `(N, F)`. The
        latter are promoted to column vectors `(N, 1, F, 1)`.
    validation : Optional[Tuple[array-like, array-like]], optional
        Validation `(inputs, labels)` evaluated at the end of every epoch.
    test : Optional[Tuple[array-like, array-like]], optional
        Test `(inputs, labels)` used by `Network.evaluate`.
    shuffle : bool, optional
        If True, the training items are reordered at the start of every epoch.
    seed : Optional[int], optional
        Seed of the shuffling generator.

    Raises
    ------
    ValueError
        If an array has an unsupported rank, is empty, or inputs and labels
        differ in length.
    """

    def __init__(
        self,
        train_x: Any,
        train_y: Any,
        validation: Optional[Split] = None,
        test: Optional[Split] = None,
        *,
        shuffle: bool = False,
        seed: Optional[int] = None,
    ) -> None:
        self._train_x, self._train_y = _as_split("training", (train_x, train_y))
        self._validation = None if validation is None else _as_split("validation", validation)
        self._test = None if test is None else _as_split("test", test)

        self._shuffle = bool(shuffle)
        self._rng = np.random.default_rng(seed)
        self._order = np.arange(self._train_x.shape[0])

        self._epochs = 1
        self._batch_size = 32
        self._cursor = 0
        self._started = False
        self._end_epoch = False
        self._end_training = False

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    def _ensure_not_started(self, name: str) -> None:
        if self._started:
            raise OrderingError(f"ArrayDataset.{name} cannot change once training started")

    @property
    def epochs(self) -> int:
        return self._epochs

    @epochs.setter
    def epochs(self, value: int) -> None:
        self._ensure_not_started("epochs")
        if int(value) < 0:
            raise ValueError(f"epochs must be >= 0, got {value}")
        self._epochs = int(value)

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @batch_size.setter
    def batch_size(self, value: int) -> None:
        self._ensure_not_started("batch_size")
        if int(value) < 1:
            raise ValueError(f"batch_size must be >= 1, got {value}")
        self._batch_size = int(value)

    @property
    def train_size(self) -> int:
        return int(self._train_x.shape[0])

    # ------------------------------------------------------------------
    # IDataset
    # ------------------------------------------------------------------
    @property
    def end_training(self) -> bool:
        return self._end_training

    @property
    def end_epoch(self) -> bool:
        return self._end_epoch

    def get_batch(self) -> Batch:
        """
        Return the next training batch, or `(None, None)` when an epoch ends
        with no items left.

        Raises
        ------
        OrderingError
            If training has already ended.
        """
        if self._end_training:
            raise OrderingError("ArrayDataset.get_batch called after training ended")

        if self._cursor == 0 and self._shuffle:
            self._order = self._rng.permutation(self.train_size)
        self._started = True

        start = self._cursor
        stop = start + self._batch_size
        self._cursor = stop

        if stop > self.train_size:
            stop = self.train_size
            self._end_epoch = True
            self._epochs -= 1
            self._cursor = 0
        if self._epochs <= 0:
            self._end_training = True

        if start >= stop:
            return None, None

        idx = self._order[start:stop]
        return Tensor.from_numpy(self._train_x[idx]), Tensor.from_numpy(self._train_y[idx])

    def get_validation(self) -> Tuple[Tensor, Tensor]:
        """
        Return the whole validation split and clear `end_epoch`.

        Raises
        ------
        ValueError
            If the dataset has no validation split.
        """
        self._end_epoch = False
        if self._validation is None:
            raise ValueError("ArrayDataset has no validation split")
        x, y = self._validation
        return Tensor.from_numpy(x), Tensor.from_numpy(y)

    def get_test_set(self) -> Tuple[Tensor, Tensor]:
        """
        Return the whole test split.

        Raises
        ------
        ValueError
            If the dataset has no test split.
        """
        if self._test is None:
            raise ValueError("ArrayDataset has no test split")
        x, y = self._test
        return Tensor.from_numpy(x), Tensor.from_numpy(y)
