"""
Weight initialization public API.

This module aggregates and exposes all supported weight initialization
strategies (constant, standard normal, Xavier and Kaiming) and registers them
into the global `WeightInitializer` registry via import side effects.

Exports
-------
- WeightInitializer:
    The registry-backed initializer dispatcher.
- resolve_initializer:
    Normalizes a name / instance / None argument into a dispatcher.

Notes
-----
- Individual initializer implementations are defined in submodules and
  registered at import time.
- Concrete initializer functions are accessed indirectly via registry names.
"""

from ._constants import *
from ._xavier import *
from ._kaiming import *
from ._base import WeightInitializer, resolve_initializer

__all__ = [
    WeightInitializer.__name__,
    resolve_initializer.__name__,
]
