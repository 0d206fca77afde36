"""Optical surface: geometry plus aperture, coating, damage threshold and hit map."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any
from uuid import UUID

import numpy as np

from opticore.core.config import FluenceEstimator
from opticore.core.errors import AnalysisError, ConfigError
from opticore.core.logging import get_logger
from raysim.core.frames import Isometry
from raysim.hitmap.hit_map import (
    DEFAULT_NR_OF_POINTS,
    CriticalFluence,
    EnergyHitPoint,
    HitMap,
)
from raysim.surfaces.aperture import Aperture, NoAperture, aperture_from_dict
from raysim.surfaces.coating import Coating, IdealAR, coating_from_dict
from raysim.surfaces.geometry import GeoSurface, Plane, surface_from_dict

if TYPE_CHECKING:
    from raysim.rays.bundle import RayBundle

logger = get_logger(__name__)

# J/cm^2
DEFAULT_LIDT = 1.0


class OpticSurface:
    """Surface of an optical port.

    Args:
        geo_surface: Geometric shape, a plane if None
        anchor_point_iso: Offset of the shape relative to the node pose
        aperture: Transmission mask in the local frame
        coating: Reflectivity model
        lidt: Laser induced damage threshold in J/cm^2
    """

    def __init__(
        self,
        geo_surface: GeoSurface | None = None,
        anchor_point_iso: Isometry | None = None,
        aperture: Aperture | None = None,
        coating: Coating | None = None,
        lidt: float = DEFAULT_LIDT,
    ):
        self.geo_surface = geo_surface if geo_surface is not None else Plane()
        self.anchor_point_iso = anchor_point_iso if anchor_point_iso is not None else Isometry.identity()
        self.aperture: Aperture = aperture if aperture is not None else NoAperture()
        self.coating: Coating = coating if coating is not None else IdealAR()
        self.lidt = lidt
        self.hit_map = HitMap()
        self.forward_rays_cache: list[RayBundle] = []
        self.backward_rays_cache: list[RayBundle] = []

    @property
    def lidt(self) -> float:
        return self._lidt

    @lidt.setter
    def lidt(self, value: float) -> None:
        if math.isnan(value) or value <= 0.0:
            raise ConfigError("LIDT must be positive and not NaN")
        self._lidt = float(value)

    @property
    def isometry(self) -> Isometry:
        """World pose of the geometric surface."""
        return self.geo_surface.isometry

    def set_isometry(self, iso: Isometry) -> None:
        """Place the surface for a node located at ``iso``."""
        self.geo_surface.isometry = iso.append(self.anchor_point_iso)

    def intersect(self, pos, direction) -> tuple[np.ndarray, np.ndarray] | None:  # type: ignore[no-untyped-def]
        """Hit point and unit normal facing the incoming ray, or None."""
        hit = self.geo_surface.intersect(pos, direction)
        if hit is None:
            return None
        point, normal = hit
        normal = normal / np.linalg.norm(normal)
        if np.dot(normal, direction) > 0.0:
            normal = -normal
        return point, normal

    def transmission(self, points) -> np.ndarray:  # type: ignore[no-untyped-def]
        """Aperture transmission for world points of shape (N, 3)."""
        points = np.atleast_2d(np.asarray(points, dtype=np.float64))
        local = (points - self.isometry.t) @ self.isometry.R
        return self.aperture.transmission(local[:, 0], local[:, 1])

    def add_to_hit_map(self, point, energy_j: float, bounce: int, bundle_uuid: UUID) -> None:  # type: ignore[no-untyped-def]
        """Store a world-space hit point in the local frame of this surface."""
        local = self.isometry.inverse_transform_point(point)
        self.hit_map.add_to_hitmap(EnergyHitPoint(local, energy_j), bounce, bundle_uuid)

    def reset_hit_map(self) -> None:
        self.hit_map.reset()

    def add_to_forward_rays_cache(self, bundle: RayBundle) -> None:
        self.forward_rays_cache.append(bundle)

    def add_to_backward_rays_cache(self, bundle: RayBundle) -> None:
        self.backward_rays_cache.append(bundle)

    def reset_rays_caches(self) -> None:
        self.forward_rays_cache.clear()
        self.backward_rays_cache.clear()

    def evaluate_fluence_of_ray_bundle(
        self, bundle: RayBundle, estimator: FluenceEstimator = FluenceEstimator.VORONOI
    ) -> None:
        """Record the bundle as critical if its peak fluence exceeds the LIDT.

        The fluence is estimated from the hit points the bundle left on this
        surface, i.e. from the incident energy. Bundles without hit points are
        skipped, estimation failures (e.g. too few rays) are logged and ignored.
        """
        if bundle.bounce_lvl >= len(self.hit_map.bounced):
            return
        rays_hit_map = self.hit_map.bounced[bundle.bounce_lvl].get(bundle.uuid)
        if rays_hit_map is None or not len(rays_hit_map):
            return
        try:
            fluence = rays_hit_map.calc_fluence_map(estimator, DEFAULT_NR_OF_POINTS).peak()
        except AnalysisError as e:
            logger.warning("fluence of ray bundle could not be evaluated", {"reason": str(e)})
            return
        if fluence > self.lidt:
            history_len = len(bundle.rays[0].pos_hist) if bundle.rays else 0
            self.hit_map.add_critical_fluence(
                bundle.uuid, CriticalFluence(fluence, history_len + 1, bundle.bounce_lvl)
            )
            logger.warning(
                "fluence above damage threshold",
                {"fluence_j_cm2": fluence, "lidt_j_cm2": self.lidt, "bundle": str(bundle.uuid)},
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "geometry": self.geo_surface.to_dict(),
            "anchor_point_iso": self.anchor_point_iso.to_dict(),
            "aperture": self.aperture.to_dict(),
            "coating": self.coating.to_dict(),
            "lidt": self.lidt,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OpticSurface:
        geometry = data.get("geometry")
        anchor = data.get("anchor_point_iso")
        return cls(
            geo_surface=surface_from_dict(geometry) if geometry else None,
            anchor_point_iso=Isometry.from_dict(anchor) if anchor else None,
            aperture=aperture_from_dict(data.get("aperture")),
            coating=coating_from_dict(data.get("coating")),
            lidt=float(data.get("lidt", DEFAULT_LIDT)),
        )

    def __repr__(self) -> str:
        return (
            f"OpticSurface({self.geo_surface!r}, aperture={type(self.aperture).__name__}, "
            f"coating={type(self.coating).__name__}, lidt={self.lidt})"
        )


__all__ = ["OpticSurface", "DEFAULT_LIDT"]
