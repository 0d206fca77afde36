"""Coordinate frame transformations for optical node placement.

Right-handed coordinate system with Z-Y-X Euler rotations and translations in
millimeters. The local z axis of a node frame is the optical axis.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from scipy.spatial.transform import Rotation

PARALLEL_TOL = 1e-12


def rotation_zyx(euler_zyx) -> np.ndarray:  # type: ignore[no-untyped-def]
    """Rotation matrix for Euler angles [rz, ry, rx] in radians (R = Rz * Ry * Rx)."""
    rz, ry, rx = (float(a) for a in euler_zyx)
    cz, sz = np.cos(rz), np.sin(rz)
    cy, sy = np.cos(ry), np.sin(ry)
    cx, sx = np.cos(rx), np.sin(rx)

    return np.array(
        [
            [cy * cz, sx * sy * cz - cx * sz, cx * sy * cz + sx * sz],
            [cy * sz, sx * sy * sz + cx * cz, cx * sy * sz - sx * cz],
            [-sy, sx * cy, cx * cy],
        ],
        dtype=np.float64,
    )


class Isometry:
    """Rigid pose: rotation matrix ``R`` and translation ``t`` (mm).

    Maps local coordinates to world coordinates: ``p_world = R @ p_local + t``.
    """

    __slots__ = ("R", "t")

    def __init__(self, R: np.ndarray | None = None, t: Any = None):
        self.R = np.eye(3) if R is None else np.asarray(R, dtype=np.float64).reshape(3, 3)
        self.t = np.zeros(3) if t is None else np.asarray(t, dtype=np.float64).reshape(3)
        if not (np.all(np.isfinite(self.R)) and np.all(np.isfinite(self.t))):
            raise ValueError("isometry components must be finite")

    @classmethod
    def identity(cls) -> Isometry:
        return cls()

    @classmethod
    def from_pose(cls, t_mm, r_rad=(0.0, 0.0, 0.0)) -> Isometry:  # type: ignore[no-untyped-def]
        """Build from translation and rotation angles (rx, ry, rz) in radians."""
        rx, ry, rz = r_rad
        return compose((rz, ry, rx), t_mm)

    @classmethod
    def translation(cls, x: float, y: float, z: float) -> Isometry:
        return cls(t=(x, y, z))

    @property
    def euler_zyx(self) -> np.ndarray:
        """Euler angles [rz, ry, rx] in radians."""
        return Rotation.from_matrix(self.R).as_euler("ZYX")

    def transform_point(self, p) -> np.ndarray:  # type: ignore[no-untyped-def]
        return self.R @ np.asarray(p, dtype=np.float64) + self.t

    def transform_vector(self, v) -> np.ndarray:  # type: ignore[no-untyped-def]
        return self.R @ np.asarray(v, dtype=np.float64)

    def inverse_transform_point(self, p) -> np.ndarray:  # type: ignore[no-untyped-def]
        return self.R.T @ (np.asarray(p, dtype=np.float64) - self.t)

    def inverse_transform_vector(self, v) -> np.ndarray:  # type: ignore[no-untyped-def]
        return self.R.T @ np.asarray(v, dtype=np.float64)

    def inverse(self) -> Isometry:
        return Isometry(self.R.T, -self.R.T @ self.t)

    def append(self, other: Isometry) -> Isometry:
        """Apply ``other`` in the local frame of this isometry."""
        return Isometry(self.R @ other.R, self.R @ other.t + self.t)

    def is_close(self, other: Isometry, atol: float = 1e-9) -> bool:
        return bool(np.allclose(self.R, other.R, atol=atol) and np.allclose(self.t, other.t, atol=atol))

    def to_dict(self) -> dict[str, list[float]]:
        return {"t": self.t.tolist(), "euler_zyx": self.euler_zyx.tolist()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Isometry:
        return compose(data.get("euler_zyx", (0.0, 0.0, 0.0)), data.get("t", (0.0, 0.0, 0.0)))

    def __repr__(self) -> str:
        return f"Isometry(t={self.t.tolist()}, euler_zyx={self.euler_zyx.tolist()})"


def compose(euler_zyx, t_mm) -> Isometry:  # type: ignore[no-untyped-def]
    """Compose a Z-Y-X Euler rotation and a translation.

    Args:
        euler_zyx: Euler angles [rz, ry, rx] in radians
        t_mm: Translation [tx, ty, tz] in millimeters

    Returns:
        Isometry mapping local to world coordinates
    """
    return Isometry(rotation_zyx(euler_zyx), t_mm)


def identity() -> Isometry:
    """Isometry without rotation or translation."""
    return Isometry()


def to_world(p_local, iso: Isometry) -> np.ndarray:  # type: ignore[no-untyped-def]
    """Transform points of shape (..., 3) from local to world coordinates."""
    p_local = np.asarray(p_local, dtype=np.float64)
    return p_local @ iso.R.T + iso.t


def from_world(p_world, iso: Isometry) -> np.ndarray:  # type: ignore[no-untyped-def]
    """Transform points of shape (..., 3) from world to local coordinates."""
    p_world = np.asarray(p_world, dtype=np.float64)
    return (p_world - iso.t) @ iso.R


def invert(iso: Isometry) -> Isometry:
    """Inverse transform."""
    return iso.inverse()


def compose_chain(isometries: list[Isometry]) -> Isometry:
    """Compose isometries, each expressed in the frame of the previous one."""
    result = identity()
    for iso in isometries:
        result = result.append(iso)
    return result


def look_along(position, direction, up) -> Isometry:  # type: ignore[no-untyped-def]
    """Pose at ``position`` whose local z axis points along ``direction``.

    The local y axis is ``up`` projected onto the plane orthogonal to
    ``direction``.

    Raises:
        ValueError: If direction is zero or parallel to up
    """
    z = np.asarray(direction, dtype=np.float64)
    norm = np.linalg.norm(z)
    if norm < PARALLEL_TOL:
        raise ValueError("direction must not be a zero vector")
    z = z / norm
    y = np.asarray(up, dtype=np.float64)
    y = y - np.dot(y, z) * z
    y_norm = np.linalg.norm(y)
    if y_norm < PARALLEL_TOL:
        raise ValueError("up direction must not be parallel to the viewing direction")
    y = y / y_norm
    x = np.cross(y, z)
    return Isometry(np.column_stack([x, y, z]), position)


def rotation_between(a, b) -> np.ndarray:  # type: ignore[no-untyped-def]
    """Rotation matrix turning unit vector ``a`` onto unit vector ``b``."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    a = a / np.linalg.norm(a)
    b = b / np.linalg.norm(b)
    v = np.cross(a, b)
    c = float(np.dot(a, b))
    s = float(np.linalg.norm(v))
    if s < PARALLEL_TOL:
        if c > 0.0:
            return np.eye(3)
        # antiparallel: rotate by pi about any axis orthogonal to a
        axis = np.cross(a, [1.0, 0.0, 0.0])
        if np.linalg.norm(axis) < PARALLEL_TOL:
            axis = np.cross(a, [0.0, 1.0, 0.0])
        return Rotation.from_rotvec(np.pi * axis / np.linalg.norm(axis)).as_matrix()
    vx = np.array([[0.0, -v[2], v[1]], [v[2], 0.0, -v[0]], [-v[1], v[0], 0.0]])
    return np.eye(3) + vx + vx @ vx * ((1.0 - c) / (s * s))


__all__ = [
    "Isometry",
    "rotation_zyx",
    "compose",
    "identity",
    "to_world",
    "from_world",
    "invert",
    "compose_chain",
    "look_along",
    "rotation_between",
]
