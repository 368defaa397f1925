"""
Progress reporting interface.

Training and evaluation loops notify a reporter instead of writing to a
console, so callers decide how progress is surfaced (logging, UI, metrics).
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class IProgressReporter(Protocol):
    """
    Sink for per-epoch and end-of-evaluation events.
    """

    def on_epoch_end(self, epoch: int, loss: float, accuracy: float) -> None:
        """
        Called after each epoch's validation pass (epochs are 1-based).
        """
        ...

    def on_evaluation_end(self, loss: float, accuracy: float) -> None:
        """
        Called after the test-set evaluation.
        """
        ...
