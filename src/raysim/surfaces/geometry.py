"""Closed-form geometric surfaces for ray intersection.

Every surface is defined in its own local frame (vertex at the origin, optical
axis along +z) and placed in the world by an :class:`Isometry`. Intersection
returns the world-space hit point and the surface normal, or ``None`` when the
ray does not hit.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

import numpy as np

from opticore.core.errors import ConfigError
from raysim.core.frames import Isometry

# Below this |a| the quadratic degenerates to a linear equation
LINEAR_TOL = 1e-14

Hit = tuple[np.ndarray, np.ndarray]


class SurfaceKind(str, Enum):
    """Closed set of geometric surface types."""

    PLANE = "plane"
    SPHERE = "sphere"
    PARABOLA = "parabola"
    CYLINDER = "cylinder"


class GeoSurface(ABC):
    """Base class of all geometric surfaces."""

    kind: SurfaceKind

    def __init__(self, isometry: Isometry | None = None):
        self.isometry = isometry if isometry is not None else Isometry.identity()

    def intersect(self, pos, direction) -> Hit | None:  # type: ignore[no-untyped-def]
        """Intersect a ray given in world coordinates.

        Args:
            pos: Ray position in mm
            direction: Unit direction vector

        Returns:
            Tuple (point, normal) in world coordinates or None
        """
        local_pos = self.isometry.inverse_transform_point(pos)
        local_dir = self.isometry.inverse_transform_vector(direction)
        hit = self._intersect_local(local_pos, local_dir)
        if hit is None:
            return None
        point, normal = hit
        return self.isometry.transform_point(point), self.isometry.transform_vector(normal)

    @abstractmethod
    def _intersect_local(self, pos: np.ndarray, direction: np.ndarray) -> Hit | None:
        ...

    @abstractmethod
    def params(self) -> dict[str, Any]:
        ...

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, **self.params()}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.params()})"


def _select_root(a: float, b: float, c: float, use_min: bool) -> float | None:
    """Pick a root of a*t^2 + b*t + c = 0 that lies in front of the ray."""
    if abs(a) < LINEAR_TOL:
        if abs(b) < LINEAR_TOL:
            return None
        t = -c / b
    else:
        disc = b * b - 4.0 * a * c
        if disc < 0.0:
            return None
        sq = math.sqrt(disc)
        t1 = (-b - sq) / (2.0 * a)
        t2 = (-b + sq) / (2.0 * a)
        t1, t2 = min(t1, t2), max(t1, t2)
        t = t1 if use_min else t2
    if t < 0.0 or not math.isfinite(t):
        return None
    return t


class Plane(GeoSurface):
    """Flat surface z = 0 with normal (0, 0, -1)."""

    kind = SurfaceKind.PLANE

    def _intersect_local(self, pos: np.ndarray, direction: np.ndarray) -> Hit | None:
        if abs(direction[2]) < LINEAR_TOL:
            return None
        t = -pos[2] / direction[2]
        if t < 0.0:
            return None
        return pos + t * direction, np.array([0.0, 0.0, -1.0])

    def params(self) -> dict[str, Any]:
        return {}


class Sphere(GeoSurface):
    """Spherical cap with vertex at the origin and center at (0, 0, R).

    R > 0 is convex towards -z, R < 0 concave.
    """

    kind = SurfaceKind.SPHERE

    def __init__(self, radius_mm: float, isometry: Isometry | None = None):
        if radius_mm == 0.0 or not math.isfinite(radius_mm):
            raise ConfigError("radius of curvature must be != 0.0 and finite")
        super().__init__(isometry)
        self.radius_mm = float(radius_mm)

    def _intersect_local(self, pos: np.ndarray, direction: np.ndarray) -> Hit | None:
        center = np.array([0.0, 0.0, self.radius_mm])
        rel = pos - center
        a = float(direction @ direction)
        b = 2.0 * float(direction @ rel)
        c = float(rel @ rel) - self.radius_mm**2
        # back-propagating rays see the cap from the other side
        use_min = (self.radius_mm > 0.0) == (direction[2] >= 0.0)
        t = _select_root(a, b, c, use_min)
        if t is None:
            return None
        point = pos + t * direction
        normal = (point - center) / abs(self.radius_mm)
        if self.radius_mm < 0.0:
            normal = -normal
        return point, normal

    def params(self) -> dict[str, Any]:
        return {"radius_mm": self.radius_mm}


class Cylinder(GeoSurface):
    """Cylindrical surface with its axis parallel to local y, vertex at the origin."""

    kind = SurfaceKind.CYLINDER

    def __init__(self, radius_mm: float, isometry: Isometry | None = None):
        if radius_mm == 0.0 or not math.isfinite(radius_mm):
            raise ConfigError("radius of curvature must be != 0.0 and finite")
        super().__init__(isometry)
        self.radius_mm = float(radius_mm)

    def _intersect_local(self, pos: np.ndarray, direction: np.ndarray) -> Hit | None:
        px, pz = pos[0], pos[2] - self.radius_mm
        dx, dz = direction[0], direction[2]
        a = dx * dx + dz * dz
        if a < LINEAR_TOL:
            return None
        b = 2.0 * (px * dx + pz * dz)
        c = px * px + pz * pz - self.radius_mm**2
        use_min = (self.radius_mm > 0.0) == (direction[2] >= 0.0)
        t = _select_root(a, b, c, use_min)
        if t is None:
            return None
        point = pos + t * direction
        normal = np.array([point[0], 0.0, point[2] - self.radius_mm]) / abs(self.radius_mm)
        if self.radius_mm < 0.0:
            normal = -normal
        return point, normal

    def params(self) -> dict[str, Any]:
        return {"radius_mm": self.radius_mm}


class Parabola(GeoSurface):
    """Paraboloid x^2 + y^2 - 4 f z = 0 with focal length f."""

    kind = SurfaceKind.PARABOLA

    def __init__(self, focal_length_mm: float, isometry: Isometry | None = None):
        if focal_length_mm == 0.0 or not math.isfinite(focal_length_mm):
            raise ConfigError("focal length must be != 0.0 and finite")
        super().__init__(isometry)
        self.focal_length_mm = float(focal_length_mm)

    def _intersect_local(self, pos: np.ndarray, direction: np.ndarray) -> Hit | None:
        f = self.focal_length_mm
        px, py, pz = pos
        dx, dy, dz = direction
        a = dx * dx + dy * dy
        b = 2.0 * (px * dx + py * dy - 2.0 * f * dz)
        c = px * px + py * py - 4.0 * f * pz
        use_min = (f > 0.0) == (dz >= 0.0)
        t = _select_root(a, b, c, use_min)
        if t is None:
            return None
        point = pos + t * direction
        normal = np.array([point[0], point[1], -2.0 * f])
        return point, normal / np.linalg.norm(normal)

    def params(self) -> dict[str, Any]:
        return {"focal_length_mm": self.focal_length_mm}


SURFACE_TYPES: dict[SurfaceKind, type[GeoSurface]] = {
    SurfaceKind.PLANE: Plane,
    SurfaceKind.SPHERE: Sphere,
    SurfaceKind.PARABOLA: Parabola,
    SurfaceKind.CYLINDER: Cylinder,
}


def surface_from_dict(data: dict[str, Any]) -> GeoSurface:
    """Rebuild a geometric surface from ``to_dict`` output."""
    params = dict(data)
    try:
        kind = SurfaceKind(params.pop("kind"))
    except (KeyError, ValueError) as e:
        raise ConfigError(f"unknown surface description: {data}") from e
    return SURFACE_TYPES[kind](**params)


__all__ = [
    "SurfaceKind",
    "GeoSurface",
    "Plane",
    "Sphere",
    "Cylinder",
    "Parabola",
    "SURFACE_TYPES",
    "surface_from_dict",
]
