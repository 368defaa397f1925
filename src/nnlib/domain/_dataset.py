"""
Dataset provider interface.

The network's `fit` / `evaluate` loops delegate batch iteration to an object
implementing `IDataset`. Loading and downloading data is the provider's
business; the network only consumes `(inputs, labels)` tensor pairs.
"""

from __future__ import annotations

from typing import Optional, Protocol, Tuple, runtime_checkable

from ._tensor import ITensor

Batch = Tuple[Optional[ITensor], Optional[ITensor]]


@runtime_checkable
class IDataset(Protocol):
    """
    Dataset provider contract.

    Notes
    -----
    - `epochs` and `batch_size` are settable before training starts and must
      be rejected once the first training batch has been pulled.
    - `get_batch` may return `(None, None)` to signal an epoch boundary with
      no more training data in the current epoch, without ending training.
    - `end_epoch` is raised after the last batch of an epoch and cleared by
      `get_validation`.
    """

    epochs: int
    batch_size: int

    @property
    def end_training(self) -> bool: ...

    @property
    def end_epoch(self) -> bool: ...

    def get_batch(self) -> Batch: ...

    def get_validation(self) -> Tuple[ITensor, ITensor]: ...

    def get_test_set(self) -> Tuple[ITensor, ITensor]: ...
