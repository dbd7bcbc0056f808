"""
Units and scalar conversions shared by the codec and the simulator.

Lengths inside the simulator are microns, angles are radians measured
from the vertical normal. Refractive indices are stored as byte "codes"
in hundredths above 0.99.
"""

import math

Microns = float
Radians = float

U8_MAX = 0xFF
U16_MAX = 0xFFFF
U32_MAX = 0xFFFF_FFFF
U64_MAX = 0xFFFF_FFFF_FFFF_FFFF

MICRONS_PER_MM_TENTH = 100

# Exit angles are reported in 40000ths of a radian.
ANGLE_UNITS_PER_RADIAN = 40_000

RI_AIR = 1
RI_WATER = 34
RI_ACRYLIC = 51


def model_ri_to_real_ri(model_ri: int) -> float:
    """Convert a refractive-index code to the real refractive index."""
    return model_ri * 0.01 + 0.99


def mm_tenths_to_microns(mm10ths: int) -> int:
    """Convert a thickness in tenths of millimetres to microns."""
    return mm10ths * MICRONS_PER_MM_TENTH


def saturate(value: int, upper: int, lower: int = 0) -> int:
    """Clamp an integer into [lower, upper] instead of letting it wrap."""
    return max(lower, min(upper, value))


def saturate_byte(value: int) -> int:
    return saturate(value, U8_MAX)


def radians_to_angle_units(angle: Radians) -> int:
    """Convert an angle to the integer 1/40000 rad scale, saturating at u16."""
    return saturate(int(round(abs(angle) * ANGLE_UNITS_PER_RADIAN)), U16_MAX)


def degrees_range(start: float, stop: float, step: float) -> list[float]:
    """
    Inclusive range of angles in degrees, converted to radians.

    Args:
        start: First angle in degrees
        stop: Last angle in degrees (included when reachable by whole steps)
        step: Positive step in degrees

    Returns:
        List of angles in radians
    """
    if step <= 0:
        raise ValueError(f"Angle step must be positive, got {step}")

    count = int(math.floor((stop - start) / step + 1e-9)) + 1
    return [math.radians(start + i * step) for i in range(max(count, 0))]
