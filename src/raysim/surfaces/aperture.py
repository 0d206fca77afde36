"""Apertures: spatial transmission masks of optical surfaces.

Apertures are evaluated in the local xy plane of the surface they belong to.
An aperture of type ``HOLE`` transmits inside its shape, ``OBSTRUCTION``
blocks inside its shape.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

import numpy as np

from opticore.core.errors import ConfigError


class ApertureType(str, Enum):
    """Whether the shape transmits or blocks."""

    HOLE = "hole"
    OBSTRUCTION = "obstruction"


def _finalize(transmission: np.ndarray, aperture_type: ApertureType) -> np.ndarray:
    if aperture_type == ApertureType.OBSTRUCTION:
        return 1.0 - transmission
    return transmission


@dataclass(slots=True)
class NoAperture:
    """Transmits everything."""

    def transmission(self, x, y) -> np.ndarray:  # type: ignore[no-untyped-def]
        return np.ones(np.broadcast(np.asarray(x), np.asarray(y)).shape)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "none"}


@dataclass(slots=True)
class CircleAperture:
    """Binary circular aperture."""

    radius_mm: float
    center_mm: tuple[float, float] = (0.0, 0.0)
    aperture_type: ApertureType = ApertureType.HOLE

    def __post_init__(self) -> None:
        if not math.isfinite(self.radius_mm) or self.radius_mm <= 0.0:
            raise ConfigError("radius must be positive")

    def transmission(self, x, y) -> np.ndarray:  # type: ignore[no-untyped-def]
        dx = np.asarray(x, dtype=np.float64) - self.center_mm[0]
        dy = np.asarray(y, dtype=np.float64) - self.center_mm[1]
        inside = (dx * dx + dy * dy) <= self.radius_mm**2
        return _finalize(inside.astype(np.float64), self.aperture_type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "circle",
            "radius_mm": self.radius_mm,
            "center_mm": list(self.center_mm),
            "aperture_type": self.aperture_type.value,
        }


@dataclass(slots=True)
class RectangleAperture:
    """Binary rectangular aperture."""

    width_mm: float
    height_mm: float
    center_mm: tuple[float, float] = (0.0, 0.0)
    aperture_type: ApertureType = ApertureType.HOLE

    def __post_init__(self) -> None:
        sizes = (self.width_mm, self.height_mm)
        if not all(math.isfinite(s) and s > 0.0 for s in sizes):
            raise ConfigError("height & width must be positive")
        if not all(math.isfinite(c) for c in self.center_mm):
            raise ConfigError("center must be finite")

    def transmission(self, x, y) -> np.ndarray:  # type: ignore[no-untyped-def]
        dx = np.abs(np.asarray(x, dtype=np.float64) - self.center_mm[0])
        dy = np.abs(np.asarray(y, dtype=np.float64) - self.center_mm[1])
        inside = (dx <= 0.5 * self.width_mm) & (dy <= 0.5 * self.height_mm)
        return _finalize(inside.astype(np.float64), self.aperture_type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "rectangle",
            "width_mm": self.width_mm,
            "height_mm": self.height_mm,
            "center_mm": list(self.center_mm),
            "aperture_type": self.aperture_type.value,
        }


@dataclass(slots=True)
class PolygonAperture:
    """Binary polygon aperture (even-odd rule)."""

    points_mm: list[tuple[float, float]]
    aperture_type: ApertureType = ApertureType.HOLE

    def __post_init__(self) -> None:
        if len(self.points_mm) < 3:
            raise ConfigError("less than 3 points given")

    def transmission(self, x, y) -> np.ndarray:  # type: ignore[no-untyped-def]
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        poly = np.asarray(self.points_mm, dtype=np.float64)
        inside = np.zeros(np.broadcast(x, y).shape, dtype=bool)
        xj, yj = poly[-1]
        for xi, yi in poly:
            crosses = (yi > y) != (yj > y)
            with np.errstate(divide="ignore", invalid="ignore"):
                x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            inside ^= crosses & (x < x_cross)
            xj, yj = xi, yi
        return _finalize(inside.astype(np.float64), self.aperture_type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "polygon",
            "points_mm": [list(p) for p in self.points_mm],
            "aperture_type": self.aperture_type.value,
        }


@dataclass(slots=True)
class GaussianAperture:
    """Soft aperture with Gaussian transmission profile."""

    sigma_mm: tuple[float, float]
    center_mm: tuple[float, float] = (0.0, 0.0)
    aperture_type: ApertureType = ApertureType.HOLE

    def __post_init__(self) -> None:
        if not all(math.isfinite(s) and s > 0.0 for s in self.sigma_mm):
            raise ConfigError("parameters out of range")
        if not all(math.isfinite(c) for c in self.center_mm):
            raise ConfigError("parameters out of range")

    def transmission(self, x, y) -> np.ndarray:  # type: ignore[no-untyped-def]
        u = (np.asarray(x, dtype=np.float64) - self.center_mm[0]) / self.sigma_mm[0]
        v = (np.asarray(y, dtype=np.float64) - self.center_mm[1]) / self.sigma_mm[1]
        return _finalize(np.exp(-0.5 * (u * u + v * v)), self.aperture_type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "gaussian",
            "sigma_mm": list(self.sigma_mm),
            "center_mm": list(self.center_mm),
            "aperture_type": self.aperture_type.value,
        }


@dataclass(slots=True)
class StackAperture:
    """Product of several apertures."""

    apertures: list[Aperture] = field(default_factory=list)
    aperture_type: ApertureType = ApertureType.HOLE

    def transmission(self, x, y) -> np.ndarray:  # type: ignore[no-untyped-def]
        t = np.ones(np.broadcast(np.asarray(x), np.asarray(y)).shape)
        for aperture in self.apertures:
            t = t * aperture.transmission(x, y)
        return _finalize(t, self.aperture_type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "stack",
            "apertures": [a.to_dict() for a in self.apertures],
            "aperture_type": self.aperture_type.value,
        }


Aperture = Union[
    NoAperture, CircleAperture, RectangleAperture, PolygonAperture, GaussianAperture, StackAperture
]


def aperture_from_dict(data: dict[str, Any] | None) -> Aperture:
    """Rebuild an aperture from ``to_dict`` output."""
    if not data:
        return NoAperture()
    params = dict(data)
    kind = params.pop("kind", "none")
    if "aperture_type" in params:
        params["aperture_type"] = ApertureType(params["aperture_type"])
    for key in ("center_mm", "sigma_mm"):
        if key in params:
            params[key] = tuple(params[key])
    if kind == "none":
        return NoAperture()
    if kind == "circle":
        return CircleAperture(**params)
    if kind == "rectangle":
        return RectangleAperture(**params)
    if kind == "polygon":
        params["points_mm"] = [tuple(p) for p in params["points_mm"]]
        return PolygonAperture(**params)
    if kind == "gaussian":
        return GaussianAperture(**params)
    if kind == "stack":
        params["apertures"] = [aperture_from_dict(a) for a in params["apertures"]]
        return StackAperture(**params)
    raise ConfigError(f"unknown aperture kind '{kind}'")


__all__ = [
    "ApertureType",
    "NoAperture",
    "CircleAperture",
    "RectangleAperture",
    "PolygonAperture",
    "GaussianAperture",
    "StackAperture",
    "Aperture",
    "aperture_from_dict",
]
