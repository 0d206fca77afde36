"""Transverse ray position distributions for sources (local z = 0 plane)."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Union

import numpy as np

from opticore.core.errors import ConfigError


@dataclass(slots=True)
class Hexapolar:
    """Centre point plus concentric rings with 6 * i points on ring i."""

    radius_mm: float
    nr_of_rings: int

    def __post_init__(self) -> None:
        if not math.isfinite(self.radius_mm) or self.radius_mm < 0.0:
            raise ConfigError("radius must be >= 0 and finite")
        if self.nr_of_rings < 0:
            raise ConfigError("number of rings must be >= 0")

    def generate(self) -> np.ndarray:
        points = [np.zeros(3)]
        if self.radius_mm > 0.0:
            for ring in range(1, self.nr_of_rings + 1):
                r = self.radius_mm * ring / self.nr_of_rings
                n = 6 * ring
                phi = 2.0 * np.pi * np.arange(n) / n
                points.extend(np.column_stack([r * np.cos(phi), r * np.sin(phi), np.zeros(n)]))
        return np.array(points)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "hexapolar", "radius_mm": self.radius_mm, "nr_of_rings": self.nr_of_rings}


@dataclass(slots=True)
class Grid:
    """Square grid of ``nr_per_side``^2 points."""

    side_mm: float
    nr_per_side: int

    def __post_init__(self) -> None:
        if not math.isfinite(self.side_mm) or self.side_mm < 0.0:
            raise ConfigError("side length must be >= 0 and finite")
        if self.nr_per_side < 1:
            raise ConfigError("number of points must be >= 1")

    def generate(self) -> np.ndarray:
        if self.nr_per_side == 1:
            return np.zeros((1, 3))
        axis = np.linspace(-0.5 * self.side_mm, 0.5 * self.side_mm, self.nr_per_side)
        xx, yy = np.meshgrid(axis, axis)
        return np.column_stack([xx.ravel(), yy.ravel(), np.zeros(xx.size)])

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "grid", "side_mm": self.side_mm, "nr_per_side": self.nr_per_side}


@dataclass(slots=True)
class RandomDisk:
    """Uniformly distributed points on a disk."""

    radius_mm: float
    nr_of_points: int
    seed: int = 0

    def __post_init__(self) -> None:
        if not math.isfinite(self.radius_mm) or self.radius_mm <= 0.0:
            raise ConfigError("radius must be > 0 and finite")
        if self.nr_of_points < 1:
            raise ConfigError("number of points must be >= 1")

    def generate(self) -> np.ndarray:
        rng = np.random.default_rng(self.seed)
        r = self.radius_mm * np.sqrt(rng.random(self.nr_of_points))
        phi = 2.0 * np.pi * rng.random(self.nr_of_points)
        return np.column_stack([r * np.cos(phi), r * np.sin(phi), np.zeros(self.nr_of_points)])

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "random_disk",
            "radius_mm": self.radius_mm,
            "nr_of_points": self.nr_of_points,
            "seed": self.seed,
        }


PositionDistribution = Union[Hexapolar, Grid, RandomDisk]


def distribution_from_dict(data: dict[str, Any]) -> PositionDistribution:
    params = dict(data)
    kind = params.pop("kind", "hexapolar")
    if kind == "hexapolar":
        return Hexapolar(**params)
    if kind == "grid":
        return Grid(**params)
    if kind == "random_disk":
        return RandomDisk(**params)
    raise ConfigError(f"unknown position distribution '{kind}'")


__all__ = ["Hexapolar", "Grid", "RandomDisk", "PositionDistribution", "distribution_from_dict"]
