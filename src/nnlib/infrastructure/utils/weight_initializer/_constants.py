"""
Constant and plain random initializers.

``zeros`` is the default bias initializer. ``normal`` draws from N(0, 1)
regardless of the tensor's fans; it is the historical default for weights and
is kept for reproducing older models.
"""

import numpy as np

from ._base import WeightInitializer


@WeightInitializer.register_initializer("zeros")
def zeros(shape, rng):
    return np.zeros(shape, dtype=np.float64)


@WeightInitializer.register_initializer("ones")
def ones(shape, rng):
    return np.ones(shape, dtype=np.float64)


@WeightInitializer.register_initializer("normal")
def normal(shape, rng):
    """Standard normal draw from the dispatcher's generator."""
    return rng.standard_normal(shape)
