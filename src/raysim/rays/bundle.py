"""Ray bundles: ordered collections of rays sharing an identity.

A bundle carries a uuid that keys its hit points on every surface it touches.
Bundles split off by partial reflection remember their parent and the history
index at which they split.
"""

from __future__ import annotations

import math
import uuid as uuidlib
from collections.abc import Iterator
from typing import TYPE_CHECKING
from uuid import UUID

import numpy as np

from opticore.core.config import MissedSurfaceStrategy
from opticore.core.errors import ConfigError
from opticore.core.logging import StructuredLogger, get_logger
from raysim.core.frames import Isometry
from raysim.core.refractive_index import RefractiveIndex
from raysim.core.spectrum import Spectrum
from raysim.hitmap.fluence import voronoi_cell_fluences
from raysim.rays.distribution import PositionDistribution
from raysim.rays.ray import Ray
from raysim.rays.splitting import FilterType, SplittingConfig
from raysim.surfaces.aperture import Aperture

if TYPE_CHECKING:
    from raysim.surfaces.optic_surface import OpticSurface

_logger = get_logger(__name__)


class RayBundle:
    """Ordered list of rays with bundle identity.

    Args:
        rays: Initial rays
        node_origin: Uuid of the node that created the bundle
        parent_id: Uuid of the bundle this one split off from
        parent_pos_split_idx: History index of the split on the parent
        bounce_lvl: Ghost reflection level of the bundle
    """

    def __init__(
        self,
        rays: list[Ray] | None = None,
        node_origin: UUID | None = None,
        parent_id: UUID | None = None,
        parent_pos_split_idx: int = 0,
        bounce_lvl: int = 0,
    ):
        self.rays: list[Ray] = list(rays or [])
        self.uuid: UUID = uuidlib.uuid4()
        self.node_origin = node_origin
        self.parent_id = parent_id
        self.parent_pos_split_idx = parent_pos_split_idx
        self.bounce_lvl = bounce_lvl

    @classmethod
    def new_collimated(
        cls,
        distribution: PositionDistribution,
        wavelength_nm: float,
        energy_j: float,
        direction=(0.0, 0.0, 1.0),  # type: ignore[no-untyped-def]
    ) -> RayBundle:
        """Parallel rays at the distribution positions, energy shared equally."""
        positions = distribution.generate()
        if len(positions) == 0:
            raise ConfigError("position distribution produced no points")
        share = energy_j / len(positions)
        return cls([Ray(p, direction, wavelength_nm, share) for p in positions])

    @classmethod
    def new_point_source(
        cls,
        distribution: PositionDistribution,
        distance_mm: float,
        wavelength_nm: float,
        energy_j: float,
    ) -> RayBundle:
        """Rays from the origin through the distribution points at ``distance_mm``."""
        if not math.isfinite(distance_mm) or distance_mm <= 0.0:
            raise ConfigError("distance must be > 0 and finite")
        targets = distribution.generate()
        share = energy_j / len(targets)
        rays = []
        for t in targets:
            direction = np.array([t[0], t[1], distance_mm])
            rays.append(Ray(np.zeros(3), direction, wavelength_nm, share))
        return cls(rays)

    def __iter__(self) -> Iterator[Ray]:
        return iter(self.rays)

    def __len__(self) -> int:
        return len(self.rays)

    def valid_rays(self) -> list[Ray]:
        return [r for r in self.rays if r.valid]

    def add_ray(self, ray: Ray) -> None:
        self.rays.append(ray)

    def copy(self) -> RayBundle:
        """Deep copy keeping the bundle identity."""
        bundle = RayBundle(
            [r.copy() for r in self.rays],
            self.node_origin,
            self.parent_id,
            self.parent_pos_split_idx,
            self.bounce_lvl,
        )
        bundle.uuid = self.uuid
        return bundle

    def nr_of_rays(self, valid_only: bool = True) -> int:
        return len(self.valid_rays()) if valid_only else len(self.rays)

    def is_empty(self) -> bool:
        return self.nr_of_rays(valid_only=True) == 0

    def ray_history_len(self) -> int:
        return max((r.ray_history_len() for r in self.rays), default=0)

    def total_energy(self) -> float:
        return math.fsum(r.energy_j for r in self.valid_rays())

    def _positions(self) -> np.ndarray:
        valid = self.valid_rays()
        return np.array([r.pos for r in valid]) if valid else np.zeros((0, 3))

    def centroid(self) -> np.ndarray | None:
        positions = self._positions()
        if len(positions) == 0:
            return None
        return positions.mean(axis=0)

    def energy_weighted_centroid(self) -> np.ndarray | None:
        valid = self.valid_rays()
        energy = self.total_energy()
        if not valid or energy <= 0.0:
            return None
        weights = np.array([r.energy_j for r in valid])
        return (weights[:, None] * self._positions()).sum(axis=0) / energy

    def beam_radius_geo(self) -> float | None:
        """Largest distance of a ray from the centroid."""
        center = self.centroid()
        if center is None:
            return None
        return float(np.max(np.linalg.norm(self._positions() - center, axis=1)))

    def beam_radius_rms(self) -> float | None:
        center = self.centroid()
        if center is None:
            return None
        d2 = np.sum((self._positions() - center) ** 2, axis=1)
        return float(np.sqrt(np.mean(d2)))

    def wavelength_range(self) -> tuple[float, float] | None:
        wavelengths = [r.wavelength_nm for r in self.valid_rays()]
        if not wavelengths:
            return None
        return min(wavelengths), max(wavelengths)

    def central_wavelength(self) -> float | None:
        """Energy-weighted mean wavelength."""
        valid = self.valid_rays()
        energy = self.total_energy()
        if not valid or energy <= 0.0:
            return None
        return math.fsum(r.energy_j * r.wavelength_nm for r in valid) / energy

    def to_spectrum(self, resolution_nm: float) -> Spectrum:
        """Energy spectrum of the valid rays."""
        wl_range = self.wavelength_range()
        if wl_range is None:
            raise ConfigError("ray bundle contains no valid rays, spectrum undefined")
        start = math.floor(wl_range[0]) - resolution_nm
        spectrum = Spectrum.new(start, wl_range[1] + 2.0 * resolution_nm, resolution_nm)
        for r in self.valid_rays():
            spectrum.add_single_peak(r.wavelength_nm, r.energy_j)
        return spectrum

    def get_xy_rays_pos(self, iso: Isometry | None = None, valid_only: bool = True) -> np.ndarray:
        """Ray positions (N, 2) in the local xy plane of ``iso``."""
        rays = self.valid_rays() if valid_only else self.rays
        if not rays:
            return np.zeros((0, 2))
        positions = np.array([r.pos for r in rays])
        if iso is not None:
            positions = (positions - iso.t) @ iso.R
        return positions[:, :2]

    def propagate(self, distance_mm: float) -> None:
        for ray in self.valid_rays():
            ray.propagate(distance_mm)

    def refract_paraxial(self, focal_length_mm: float, iso: Isometry) -> None:
        for ray in self.valid_rays():
            ray.refract_paraxial(focal_length_mm, iso)

    def refract_on_surface(
        self,
        surface: OpticSurface,
        refractive_index: RefractiveIndex | None,
        refraction_intended: bool = True,
        strategy: MissedSurfaceStrategy = MissedSurfaceStrategy.STOP,
        logger: StructuredLogger | None = None,
    ) -> RayBundle:
        """Refract all valid rays on ``surface``.

        Args:
            surface: Surface to refract on
            refractive_index: Medium behind the surface, None keeps the ray's index
            refraction_intended: False for mirrors, the reflected rays then
                replace the transmitted ones
            strategy: Handling of rays that miss the surface
            logger: Logger for non-fatal diagnostics

        Returns:
            Bundle with the reflected rays
        """
        log = logger or _logger
        reflected = RayBundle()
        valid_found = False
        missed = False
        for ray in self.rays:
            if not ray.valid:
                continue
            valid_found = True
            n2 = refractive_index.index(ray.wavelength_nm) if refractive_index is not None else None
            hit = surface.intersect(ray.pos, ray.dir)
            if hit is None:
                missed = True
                if strategy == MissedSurfaceStrategy.STOP:
                    ray.invalidate()
                continue
            reflected_ray = ray.refract_at_hit(hit[0], hit[1], surface, n2, self.uuid)
            if reflected_ray is None:
                missed = True
                continue
            if refraction_intended:
                reflected_ray.clear_pos_hist()
            else:
                reflected_ray.reduce_bounce_counter()
                ray.clear_pos_hist()
            reflected.add_ray(reflected_ray)
        if missed:
            log.warning("rays totally reflected or missed a surface")
        if not valid_found:
            log.warning("ray bundle contains no valid rays - not propagating")

        reflected.node_origin = self.node_origin
        if refraction_intended:
            reflected.parent_id = self.uuid
            reflected.parent_pos_split_idx = self.ray_history_len()
            reflected.bounce_lvl = self.bounce_lvl + 1
        else:
            reflected.uuid = self.uuid
            reflected.parent_id = self.parent_id
            reflected.parent_pos_split_idx = self.parent_pos_split_idx
            reflected.bounce_lvl = self.bounce_lvl
        return reflected

    def diffract_on_periodic_surface(
        self,
        surface: OpticSurface,
        refractive_index: RefractiveIndex,
        grating_vector,  # type: ignore[no-untyped-def]
        order: int,
        strategy: MissedSurfaceStrategy = MissedSurfaceStrategy.STOP,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Diffract all valid rays; evanescent orders are invalidated."""
        log = logger or _logger
        missed = False
        for ray in self.valid_rays():
            n2 = refractive_index.index(ray.wavelength_nm)
            if not ray.diffract_on_periodic_surface(surface, n2, grating_vector, order):
                missed = True
                if strategy == MissedSurfaceStrategy.STOP:
                    ray.invalidate()
        if missed:
            log.warning("rays missed the grating surface")

    def apodize(self, aperture: Aperture, iso: Isometry) -> bool:
        """Apply an aperture given in the frame ``iso``.

        Returns:
            True if any ray lost energy or was blocked
        """
        valid = self.valid_rays()
        if not valid:
            return False
        local = self.get_xy_rays_pos(iso)
        factors = np.asarray(aperture.transmission(local[:, 0], local[:, 1]), dtype=np.float64)
        apodized = False
        for ray, factor in zip(valid, factors):
            if factor >= 1.0:
                continue
            apodized = True
            if factor > 0.0:
                ray.energy_j *= float(factor)
            else:
                ray.invalidate()
        return apodized

    def filter_energy(self, filter_type: FilterType) -> None:
        for ray in self.valid_rays():
            ray.filter_energy(filter_type)

    def invalidate_by_threshold_energy(self, min_energy_j: float, logger: StructuredLogger | None = None) -> None:
        """Remove rays with energy below ``min_energy_j``.

        Raises:
            ConfigError: If the threshold is not finite
        """
        if not math.isfinite(min_energy_j):
            raise ConfigError("threshold energy must be finite")
        if min_energy_j < 0.0:
            (logger or _logger).warning("negative threshold energy given. Ray bundle unmodified.")
            return
        for ray in self.rays:
            if ray.energy_j < min_energy_j:
                ray.invalidate()
        self.drop_invalid()

    def drop_invalid(self) -> None:
        self.rays = self.valid_rays()

    def split(self, config: SplittingConfig) -> RayBundle:
        """Split every valid ray; the returned bundle holds the split off parts."""
        split = RayBundle(node_origin=self.node_origin, bounce_lvl=self.bounce_lvl)
        for ray in self.valid_rays():
            split.add_ray(ray.split(config))
        return split

    def merge(self, other: RayBundle) -> None:
        self.rays.extend(other.rays)

    def split_by_wavelength(self, cut_nm: float, valid_only: bool = True) -> RayBundle:
        """Move rays with wavelength >= ``cut_nm`` into a new bundle."""
        rays = self.valid_rays() if valid_only else self.rays
        long = [r for r in rays if r.wavelength_nm >= cut_nm]
        self.rays = [r for r in rays if r.wavelength_nm < cut_nm]
        return RayBundle(long, node_origin=self.node_origin, bounce_lvl=self.bounce_lvl)

    def filter_by_nr_of_bounces(self, max_bounces: int) -> None:
        for ray in self.rays:
            if ray.number_of_bounces > max_bounces:
                ray.invalidate()

    def filter_by_nr_of_refractions(self, max_refractions: int) -> None:
        # counts the refraction about to happen
        for ray in self.rays:
            if ray.number_of_refractions >= max_refractions:
                ray.invalidate()

    def define_up_direction(self) -> np.ndarray:
        valid = self.valid_rays()
        if not valid:
            return np.array([0.0, 1.0, 0.0])
        return valid[0].define_up_direction()

    def calc_new_up_direction(self, up) -> np.ndarray:  # type: ignore[no-untyped-def]
        """Rotate ``up`` like the first valid ray changed its direction."""
        for ray in self.valid_rays():
            if ray.prev_dir is not None:
                return ray.calc_new_up_direction(up)
        return np.asarray(up, dtype=np.float64)

    def transformed(self, iso: Isometry) -> RayBundle:
        bundle = self.copy()
        bundle.rays = [r.transformed(iso) for r in self.rays]
        return bundle

    def inverse_transformed(self, iso: Isometry) -> RayBundle:
        return self.transformed(iso.inverse())

    def calc_fluence_in_voronoi_cells(self, iso: Isometry | None = None) -> tuple[np.ndarray, np.ndarray]:
        """Ray positions (local xy) and the fluence of their Voronoi cells in J/cm^2."""
        points = self.get_xy_rays_pos(iso)
        energies = np.array([r.energy_j for r in self.valid_rays()])
        return points, voronoi_cell_fluences(points, energies)

    def __repr__(self) -> str:
        return f"RayBundle({self.nr_of_rays()} valid of {len(self.rays)} rays, {self.total_energy():.3e} J)"


__all__ = ["RayBundle"]
