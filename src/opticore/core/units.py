"""Unit conversion utilities.

Lengths are handled in millimeters, wavelengths in nanometers, energies in
joules and fluences in J/cm^2.
"""

import math


def nm_to_mm(value: float | int) -> float:
    """Convert nanometers to millimeters."""
    return float(value) * 1.0e-6


def mm2_to_cm2(value: float | int) -> float:
    """Convert an area in mm^2 to cm^2."""
    return float(value) / 100.0


def deg_to_rad(value: float | int) -> float:
    """Convert degrees to radians."""
    return float(value) * math.pi / 180.0


__all__ = [
    "nm_to_mm",
    "mm2_to_cm2",
    "deg_to_rad",
]
