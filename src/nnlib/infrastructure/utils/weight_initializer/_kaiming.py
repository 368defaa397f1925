"""
He initializers for dense weights followed by a ReLU.

Both variants keep the activation variance stable over fan-in:
``kaiming`` draws from N(0, 2 / fan_in) and ``kaiming_uniform`` from U(-b, b)
with b = sqrt(6 / fan_in).
"""

import math

from ._base import WeightInitializer
from ....domain.utils._weight_initialization import _calculate_fan_in_and_fan_out


def _fan_in(shape) -> int:
    return max(1, _calculate_fan_in_and_fan_out(shape)[0])


@WeightInitializer.register_initializer("kaiming")
def kaiming(shape, rng):
    return rng.normal(0.0, math.sqrt(2.0 / _fan_in(shape)), size=shape)


@WeightInitializer.register_initializer("kaiming_uniform")
def kaiming_uniform(shape, rng):
    bound = math.sqrt(6.0 / _fan_in(shape))
    return rng.uniform(-bound, bound, size=shape)
