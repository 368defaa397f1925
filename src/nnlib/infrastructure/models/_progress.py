"""
Logging-based progress reporting.

`LoggingProgressReporter` is the default `IProgressReporter`: it writes one
record per epoch and one per evaluation through the standard `logging`
module, so applications control the output with ordinary logging handlers.
"""

from __future__ import annotations

import logging
from typing import Optional

from ...domain._progress import IProgressReporter

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: int = logging.INFO) -> None:
    """
    Install a basic stream handler on the root logger.

    Intended for scripts; libraries embedding nnlib configure logging
    themselves.
    """
    logging.basicConfig(level=level, format=LOG_FORMAT)


class LoggingProgressReporter(IProgressReporter):
    """
    Report training progress through a logger.

    Parameters
    ----------
    logger : Optional[logging.Logger], optional
        Destination logger. Defaults to this module's logger.
    level : int, optional
        Level of the emitted records. Defaults to `logging.INFO`.
    """

    def __init__(
        self, logger: Optional[logging.Logger] = None, level: int = logging.INFO
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self.level = level

    def on_epoch_end(self, epoch: int, loss: float, accuracy: float) -> None:
        self.logger.log(
            self.level,
            "Epoch %d - validation loss: %.6f - accuracy: %.4f",
            epoch,
            loss,
            accuracy,
        )

    def on_evaluation_end(self, loss: float, accuracy: float) -> None:
        self.logger.log(
            self.level, "Test loss: %.6f - accuracy: %.4f", loss, accuracy
        )
