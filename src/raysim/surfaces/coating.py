"""Surface coatings: reflectivity models."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Union

import numpy as np

from opticore.core.errors import ConfigError


@dataclass(slots=True)
class IdealAR:
    """Perfect anti-reflection coating."""

    def reflectivity(self, direction, normal, n1: float, n2: float) -> float:  # type: ignore[no-untyped-def]  # noqa: ARG002
        return 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "ideal_ar"}


@dataclass(slots=True)
class ConstantR:
    """Angle and wavelength independent reflectivity."""

    reflectivity_value: float

    def __post_init__(self) -> None:
        r = self.reflectivity_value
        if not math.isfinite(r) or not 0.0 <= r <= 1.0:
            raise ConfigError("reflectivity must be within [0.0, 1.0] and finite.")

    def reflectivity(self, direction, normal, n1: float, n2: float) -> float:  # type: ignore[no-untyped-def]  # noqa: ARG002
        return self.reflectivity_value

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "constant_r", "reflectivity": self.reflectivity_value}


@dataclass(slots=True)
class Fresnel:
    """Fresnel reflection of unpolarized light (mean of s and p)."""

    def reflectivity(self, direction, normal, n1: float, n2: float) -> float:  # type: ignore[no-untyped-def]
        # normal faces the incoming ray
        cos_a = float(np.clip(-np.dot(direction, normal), -1.0, 1.0))
        cos_a = abs(cos_a)
        sin_a = math.sqrt(max(0.0, 1.0 - cos_a * cos_a))
        sin_b = n1 * sin_a / n2
        if sin_b >= 1.0:
            return 1.0
        cos_b = math.sqrt(1.0 - sin_b * sin_b)
        r_s = (n1 * cos_a - n2 * cos_b) / (n1 * cos_a + n2 * cos_b)
        r_p = (n2 * cos_a - n1 * cos_b) / (n2 * cos_a + n1 * cos_b)
        return 0.5 * (r_s * r_s + r_p * r_p)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "fresnel"}


Coating = Union[IdealAR, ConstantR, Fresnel]


def coating_from_dict(data: dict[str, Any] | None) -> Coating:
    """Rebuild a coating from ``to_dict`` output."""
    if not data:
        return IdealAR()
    kind = data.get("kind")
    if kind == "ideal_ar":
        return IdealAR()
    if kind == "constant_r":
        return ConstantR(float(data["reflectivity"]))
    if kind == "fresnel":
        return Fresnel()
    raise ConfigError(f"unknown coating kind '{kind}'")


__all__ = ["IdealAR", "ConstantR", "Fresnel", "Coating", "coating_from_dict"]
