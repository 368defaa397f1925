from ._network import Network
from ._history import History
from ._progress import LoggingProgressReporter, configure_logging

__all__ = [
    Network.__name__,
    History.__name__,
    LoggingProgressReporter.__name__,
    configure_logging.__name__,
]
