from ._tensor import Tensor
from ._parallel import (
    ParallelConfig,
    get_parallel_config,
    set_parallel_config,
    shutdown_executor,
)
from ...domain._tensor import MultiplicationMode

__all__ = [
    Tensor.__name__,
    MultiplicationMode.__name__,
    ParallelConfig.__name__,
    get_parallel_config.__name__,
    set_parallel_config.__name__,
    shutdown_executor.__name__,
]
