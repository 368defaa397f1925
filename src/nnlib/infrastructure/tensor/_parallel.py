"""
Data-parallel execution helpers for Tensor operations.

Tensor operations whose output elements (or output rows) are independent are
split into contiguous chunks and dispatched to a shared thread pool. NumPy
kernels release the GIL, so the chunks of a row-block matrix product or of a
vectorized elementwise operation run concurrently.

Design notes
------------
- Every chunk writes a disjoint slice of a freshly allocated output buffer, so
  no synchronization between workers is needed.
- Below `ParallelConfig.threshold` elements of work the body runs inline: for
  small tensors the dispatch overhead exceeds the work itself.
- Aggregating reductions must never be expressed as a chunk body that updates
  a shared accumulator. Callers pass `parallel=False` (or use a NumPy
  reduction) whenever an accumulator is threaded through the computation.
- The executor is created lazily, guarded by a lock, and shut down at
  interpreter exit.
"""

from __future__ import annotations

import atexit
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple


@dataclass(frozen=True)
class ParallelConfig:
    """
    Configuration of the tensor worker pool.

    Attributes
    ----------
    threshold : int
        Minimum number of work units (elements or rows) for which an
        operation is split across workers. Defaults to 512.
    max_workers : Optional[int]
        Number of worker threads. None uses `os.cpu_count()`.
    """

    threshold: int = 512
    max_workers: Optional[int] = None

    def __post_init__(self) -> None:
        if int(self.threshold) < 1:
            raise ValueError(f"threshold must be >= 1, got {self.threshold}")
        if self.max_workers is not None and int(self.max_workers) < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")

    @property
    def workers(self) -> int:
        return int(self.max_workers or os.cpu_count() or 1)


_config = ParallelConfig()
_executor: Optional[ThreadPoolExecutor] = None
_lock = threading.Lock()


def get_parallel_config() -> ParallelConfig:
    """Return the active worker pool configuration."""
    return _config


def set_parallel_config(config: ParallelConfig) -> None:
    """
    Replace the worker pool configuration.

    The current executor (if any) is shut down so that the next parallel
    operation creates one with the new worker count.
    """
    global _config
    if not isinstance(config, ParallelConfig):
        raise TypeError(f"expected ParallelConfig, got {type(config)!r}")
    shutdown_executor()
    _config = config


def shutdown_executor() -> None:
    """Shut down the shared executor, waiting for running chunks."""
    global _executor
    with _lock:
        if _executor is not None:
            _executor.shutdown(wait=True)
            _executor = None


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    with _lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=_config.workers, thread_name_prefix="nnlib-tensor"
            )
        return _executor


def chunk_ranges(n: int, chunks: int) -> List[Tuple[int, int]]:
    """
    Split `range(n)` into at most `chunks` contiguous `(start, stop)` ranges.

    The last range absorbs the remainder.
    """
    chunks = max(1, min(int(chunks), int(n)))
    size = n // chunks
    ranges = []
    for i in range(chunks):
        start = i * size
        stop = n if i == chunks - 1 else start + size
        ranges.append((start, stop))
    return ranges


def parallel_for(
    n: int,
    body: Callable[[int, int], None],
    *,
    unit_size: int = 1,
    parallel: bool = True,
) -> None:
    """
    Run `body(start, stop)` over `range(n)`, split across workers.

    Parameters
    ----------
    n : int
        Number of independent work units.
    body : Callable[[int, int], None]
        Processes units `[start, stop)`. Different calls must write disjoint
        output ranges.
    unit_size : int, optional
        Number of elements processed per unit (e.g. the row length when
        units are rows). Compared against the threshold as `n * unit_size`.
    parallel : bool, optional
        If False, always run a single inline call.

    Notes
    -----
    Exceptions raised by any chunk propagate to the caller.
    """
    if n <= 0:
        return

    cfg = _config
    if not parallel or n < 2 or n * unit_size < cfg.threshold or cfg.workers == 1:
        body(0, n)
        return

    executor = _get_executor()
    futures = [
        executor.submit(body, start, stop)
        for start, stop in chunk_ranges(n, cfg.workers)
    ]
    for f in futures:
        f.result()


atexit.register(shutdown_executor)
