"""
Glorot initializers scaled by fan-in + fan-out.

``xavier`` draws from N(0, 2 / (fan_in + fan_out)); ``xavier_uniform`` draws
from U(-b, b) with b = sqrt(6 / (fan_in + fan_out)) and is the default for
dense weights.
"""

import math

from ._base import WeightInitializer
from ....domain.utils._weight_initialization import _calculate_fan_in_and_fan_out


def _fan_sum(shape) -> int:
    fan_in, fan_out = _calculate_fan_in_and_fan_out(shape)
    return max(1, fan_in) + max(1, fan_out)


@WeightInitializer.register_initializer("xavier")
def xavier(shape, rng):
    """Glorot normal draw."""
    return rng.normal(0.0, math.sqrt(2.0 / _fan_sum(shape)), size=shape)


@WeightInitializer.register_initializer("xavier_uniform")
def xavier_uniform(shape, rng):
    """Glorot uniform draw."""
    bound = math.sqrt(6.0 / _fan_sum(shape))
    return rng.uniform(-bound, bound, size=shape)
