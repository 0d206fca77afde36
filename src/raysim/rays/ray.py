"""Single geometric ray and its photon-transport operations.

Positions and path lengths are in millimeters, wavelengths in nanometers and
energies in joules. Directions are stored as unit vectors.
"""

from __future__ import annotations

import copy
import math
from typing import TYPE_CHECKING, Any
from uuid import UUID

import numpy as np

from opticore.core.errors import AnalysisError, ConfigError
from opticore.core.units import nm_to_mm
from raysim.core.frames import Isometry, look_along, rotation_between
from raysim.rays.splitting import FilterType, SplittingConfig

if TYPE_CHECKING:
    from raysim.surfaces.optic_surface import OpticSurface

EPS = np.finfo(np.float64).eps
X_AXIS = np.array([1.0, 0.0, 0.0])
Y_AXIS = np.array([0.0, 1.0, 0.0])
Z_AXIS = np.array([0.0, 0.0, 1.0])


def _check_index(n: float) -> float:
    if not math.isfinite(n) or n < 1.0:
        raise ConfigError("the refractive index must be >=1.0 and finite")
    return float(n)


class Ray:
    """Geometric ray with energy, wavelength and propagation history.

    Args:
        pos: Start position in mm
        direction: Propagation direction (normalized on store)
        wavelength_nm: Wavelength in nm (> 0)
        energy_j: Energy in J (>= 0)
        refractive_index: Index of the medium the ray travels in

    Raises:
        ConfigError: If any argument is out of range
    """

    __slots__ = (
        "pos",
        "dir",
        "prev_dir",
        "pos_hist",
        "wavelength_nm",
        "energy_j",
        "number_of_bounces",
        "number_of_refractions",
        "valid",
        "path_length_mm",
        "refractive_index",
    )

    def __init__(
        self,
        pos,  # type: ignore[no-untyped-def]
        direction,
        wavelength_nm: float,
        energy_j: float,
        refractive_index: float = 1.0,
    ):
        pos = np.asarray(pos, dtype=np.float64).reshape(3)
        direction = np.asarray(direction, dtype=np.float64).reshape(3)
        if not np.all(np.isfinite(pos)):
            raise ConfigError("ray position must be finite")
        norm = float(np.linalg.norm(direction))
        if not math.isfinite(norm) or norm < EPS:
            raise ConfigError("length of direction vector must be > 0 and finite")
        if not math.isfinite(wavelength_nm) or wavelength_nm <= 0.0:
            raise ConfigError("wavelength must be > 0 and finite")
        if not math.isfinite(energy_j) or energy_j < 0.0:
            raise ConfigError("energy must be >= 0 and finite")
        self.pos = pos
        self.dir = direction / norm
        self.prev_dir: np.ndarray | None = None
        self.pos_hist: list[np.ndarray] = []
        self.wavelength_nm = float(wavelength_nm)
        self.energy_j = float(energy_j)
        self.number_of_bounces = 0
        self.number_of_refractions = 0
        self.valid = True
        self.path_length_mm = 0.0
        self.refractive_index = _check_index(refractive_index)

    @classmethod
    def new_collimated(cls, pos, wavelength_nm: float, energy_j: float) -> Ray:  # type: ignore[no-untyped-def]
        """Ray along +z."""
        return cls(pos, Z_AXIS, wavelength_nm, energy_j)

    def copy(self) -> Ray:
        return copy.deepcopy(self)

    def __deepcopy__(self, memo: dict[int, Any]) -> Ray:
        new = object.__new__(Ray)
        for name in self.__slots__:
            value = getattr(self, name)
            if isinstance(value, np.ndarray):
                value = value.copy()
            elif isinstance(value, list):
                value = [v.copy() for v in value]
            setattr(new, name, value)
        return new

    def invalidate(self) -> None:
        self.valid = False

    def ray_history_len(self) -> int:
        return len(self.pos_hist)

    def clear_pos_hist(self) -> None:
        self.pos_hist.clear()

    def reduce_bounce_counter(self) -> None:
        self.number_of_bounces -= 1

    def _move_to(self, point: np.ndarray) -> None:
        self.path_length_mm += self.refractive_index * float(np.linalg.norm(point - self.pos))
        self.pos_hist.append(self.pos)
        self.pos = np.asarray(point, dtype=np.float64)

    def propagate(self, length_mm: float) -> None:
        """Move along the direction by ``length_mm`` (may be negative).

        Raises:
            AnalysisError: If the length is not finite
        """
        if not math.isfinite(length_mm):
            raise AnalysisError("propagation length must be finite")
        self.pos_hist.append(self.pos)
        self.pos = self.pos + length_mm * self.dir
        self.path_length_mm += length_mm * self.refractive_index

    def refract_paraxial(self, focal_length_mm: float, iso: Isometry) -> None:
        """Ideal thin lens located in the z = 0 plane of ``iso``.

        The ray is expected to be at the lens plane already.

        Raises:
            ConfigError: If the focal length is zero or not finite
        """
        if focal_length_mm == 0.0 or not math.isfinite(focal_length_mm):
            raise ConfigError("focal length must be != 0.0 & finite")
        self.prev_dir = self.dir.copy()
        pos = iso.inverse_transform_point(self.pos)
        direction = iso.inverse_transform_vector(self.dir)
        direction = direction / abs(direction[2])
        direction[0] -= pos[0] / focal_length_mm
        direction[1] -= pos[1] / focal_length_mm
        r2 = pos[0] ** 2 + pos[1] ** 2
        self.path_length_mm -= (
            math.sqrt(r2 + focal_length_mm**2) - abs(focal_length_mm)
        ) * self.refractive_index
        self.number_of_refractions += 1
        new_dir = iso.transform_vector(direction)
        self.dir = new_dir / np.linalg.norm(new_dir)

    def refract_at_hit(
        self,
        point: np.ndarray,
        normal: np.ndarray,
        surface: OpticSurface,
        n2: float | None,
        bundle_uuid: UUID,
    ) -> Ray | None:
        """Snell refraction at a known intersection.

        Args:
            point: Intersection point in mm
            normal: Unit normal facing the incoming ray
            surface: Surface providing coating and hit map
            n2: Index behind the surface, None keeps the current index
            bundle_uuid: Bundle the hit point is recorded for

        Returns:
            Reflected ray carrying ``R * E``, None on total internal reflection
        """
        n1 = self.refractive_index
        n_out = _check_index(n2) if n2 is not None else n1
        mu = n1 / n_out
        s1 = self.dir
        n = normal
        n_x_s1 = np.cross(n, s1)
        dis = 1.0 - mu * mu * float(n_x_s1 @ n_x_s1)
        reflected_dir = s1 - 2.0 * float(s1 @ n) * n
        self._move_to(point)

        if dis < 0.0:
            # total internal reflection
            self.number_of_bounces += 1
            self.prev_dir = s1
            self.dir = reflected_dir
            return None

        reflectivity = surface.coating.reflectivity(s1, n, n1, n_out)
        input_energy = self.energy_j
        reflected = self.copy()
        reflected.prev_dir = s1.copy()
        reflected.dir = reflected_dir
        reflected.energy_j = input_energy * reflectivity
        reflected.number_of_bounces += 1

        refract_dir = mu * np.cross(n, -n_x_s1) - n * math.sqrt(dis)
        self.prev_dir = s1
        self.dir = refract_dir / np.linalg.norm(refract_dir)
        self.energy_j = input_energy * (1.0 - reflectivity)
        self.refractive_index = n_out
        if n2 is not None:
            self.number_of_refractions += 1

        surface.add_to_hit_map(point, input_energy, self.number_of_bounces, bundle_uuid)
        return reflected

    def diffract_on_periodic_surface(
        self, surface: OpticSurface, n2: float, grating_vector, order: int  # type: ignore[no-untyped-def]
    ) -> bool:
        """Reflective diffraction into ``order``.

        Args:
            surface: Grating surface
            n2: Index of the medium the grating sits in
            grating_vector: 2 pi * lines/mm along the grating axis (1/mm)
            order: Diffraction order

        Returns:
            False if the ray missed the surface; evanescent orders invalidate the ray
        """
        _check_index(n2)
        hit = surface.intersect(self.pos, self.dir)
        if hit is None:
            return False
        point, normal = hit
        grating_vector = np.asarray(grating_vector, dtype=np.float64)

        k0n = 2.0 * math.pi * self.refractive_index / nm_to_mm(self.wavelength_nm)
        k = self.dir * k0n
        k_par = np.cross(normal, np.cross(k, normal))
        k_perp = normal * float(k @ normal)
        k_par_out = k_par + order * grating_vector
        k_perp_out_sq = k0n * k0n - float(k_par_out @ k_par_out)

        self._move_to(point)
        # phase from the lateral offset to the grating origin
        x_local = surface.isometry.inverse_transform_point(point)[0]
        self.path_length_mm += (
            order * float(np.linalg.norm(grating_vector)) / (2.0 * math.pi) * x_local * nm_to_mm(self.wavelength_nm)
        )
        if k_perp_out_sq < 0.0:
            self.invalidate()
            return True
        k_perp_out = -k_perp / np.linalg.norm(k_perp) * math.sqrt(k_perp_out_sq)
        new_dir = k_perp_out + k_par_out
        self.prev_dir = self.dir
        self.dir = new_dir / np.linalg.norm(new_dir)
        self.number_of_bounces += 1
        return True

    def filter_energy(self, filter_type: FilterType) -> None:
        self.energy_j *= filter_type.transmission_at(self.wavelength_nm)

    def split(self, config: SplittingConfig) -> Ray:
        """Keep ``r * E``, return a copy carrying ``(1 - r) * E``."""
        ratio = config.ratio_at(self.wavelength_nm)
        split_ray = self.copy()
        self.energy_j *= ratio
        split_ray.energy_j *= 1.0 - ratio
        return split_ray

    def transformed(self, iso: Isometry) -> Ray:
        """Copy of this ray mapped from the local frame of ``iso`` to world."""
        ray = self.copy()
        ray.pos = iso.transform_point(self.pos)
        ray.dir = iso.transform_vector(self.dir)
        if self.prev_dir is not None:
            ray.prev_dir = iso.transform_vector(self.prev_dir)
        ray.pos_hist = [iso.transform_point(p) for p in self.pos_hist]
        return ray

    def inverse_transformed(self, iso: Isometry) -> Ray:
        return self.transformed(iso.inverse())

    def define_up_direction(self) -> np.ndarray:
        """Up vector orthogonal to the direction, preferring +y."""
        if np.linalg.norm(np.cross(self.dir, X_AXIS)) < EPS or np.linalg.norm(np.cross(self.dir, Z_AXIS)) < EPS:
            return Y_AXIS.copy()
        if np.linalg.norm(np.cross(self.dir, Y_AXIS)) < EPS:
            return X_AXIS.copy()
        proj = Y_AXIS - float(Y_AXIS @ self.dir) * self.dir
        return proj / np.linalg.norm(proj)

    def calc_new_up_direction(self, up) -> np.ndarray:  # type: ignore[no-untyped-def]
        """Rotate ``up`` like the last direction change of this ray.

        Raises:
            AnalysisError: If the ray has no previous direction
        """
        if self.prev_dir is None:
            raise AnalysisError("no previous direction of ray defined to calculate new up-direction!")
        return rotation_between(self.prev_dir, self.dir) @ np.asarray(up, dtype=np.float64)

    def to_isometry(self, up) -> Isometry:  # type: ignore[no-untyped-def]
        """Pose at the ray position looking along the ray."""
        return look_along(self.pos, self.dir, up)

    def __repr__(self) -> str:
        return (
            f"Ray(pos={self.pos.tolist()}, dir={self.dir.tolist()}, "
            f"{self.wavelength_nm} nm, {self.energy_j:.3e} J, valid={self.valid})"
        )


__all__ = ["Ray"]
