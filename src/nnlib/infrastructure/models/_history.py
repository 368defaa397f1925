"""
Training history utilities.

This module defines the record returned by `Network.fit`: the validation loss
and accuracy measured at the end of every epoch, in the order the epochs
completed.

Design goals
------------
- Minimal surface area: plain floats, no dependency on tensors
- Explicit 1-based epoch numbering matching the progress reporter
- Human-readable and debugger-friendly representation
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Union


Number = Union[int, float]


@dataclass
class History:
    """
    Container for per-epoch validation metrics.

    Attributes
    ----------
    history : Dict[str, List[float]]
        Mapping from metric name (``"loss"``, ``"accuracy"``) to a list of
        per-epoch values, ordered by epoch.
    epoch : List[int]
        1-based epoch numbers corresponding to entries in `history`.
    """

    history: Dict[str, List[float]] = field(default_factory=dict)
    epoch: List[int] = field(default_factory=list)

    def append_epoch(self, epoch: int, logs: Mapping[str, Number]) -> None:
        """
        Append metrics for a completed epoch.

        Metric values are coerced to `float` before storage.
        """
        self.epoch.append(int(epoch))
        for k, v in logs.items():
            self.history.setdefault(k, []).append(float(v))

    @property
    def loss(self) -> List[float]:
        return list(self.history.get("loss", []))

    @property
    def accuracy(self) -> List[float]:
        return list(self.history.get("accuracy", []))

    def last(self) -> Dict[str, float]:
        """
        Return metrics from the most recent epoch (empty before any epoch).
        """
        out: Dict[str, float] = {}
        for k, vs in self.history.items():
            if vs:
                out[k] = float(vs[-1])
        return out

    def __len__(self) -> int:
        return len(self.epoch)
