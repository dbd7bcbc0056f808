"""
Snell's law at a horizontal interface.

Directions are a signed incidence angle to the (vertical) normal plus a
flag for vertical motion. The sign is relative to the direction of
travel: positive incidence drifts right while going down and left while
going up, so a reflection is a sign flip together with a vertical flip.
"""

import math
from typing import NamedTuple

from .units import model_ri_to_real_ri, Radians

HALF_PI = math.pi / 2.0


class Refraction(NamedTuple):
    """Outcome of a ray meeting an interface."""
    incidence: Radians
    going_down: bool
    crossed: bool  # False on total internal reflection


def snells(old_ri: int, new_ri: int, incidence: Radians, going_down: bool) -> Refraction:
    """
    Calculate refraction between two media for a ray with a given incidence.

    Args:
        old_ri: RI code of the medium the ray leaves
        new_ri: RI code of the medium the ray enters
        incidence: Signed angle to the normal, in radians
        going_down: Whether the ray moves downward

    Returns:
        Refraction with the new incidence, vertical direction, and whether
        the ray crossed into the new medium

    Note:
        At exactly the critical angle the ray is snapped to run along the
        interface (±90°) and is treated as going down. This is a modelling
        convention, not exact physics.
    """
    if incidence == 0.0 or old_ri == new_ri:
        return Refraction(incidence, going_down, True)

    old_real = model_ri_to_real_ri(old_ri)
    new_real = model_ri_to_real_ri(new_ri)

    new_sin = (old_real / new_real) * math.sin(incidence)
    abs_sin = abs(new_sin)

    if abs_sin < 1.0:
        # refraction
        return Refraction(math.asin(new_sin), going_down, True)
    elif abs_sin > 1.0:
        # total internal reflection
        return Refraction(-incidence, not going_down, False)
    else:
        # critical angle
        return Refraction(math.copysign(HALF_PI, incidence), True, True)
