"""Thick cylindric lens."""

from __future__ import annotations

import math

from raysim.nodes.lens import Lens
from raysim.surfaces.geometry import Cylinder, GeoSurface, Plane


class CylindricLens(Lens):
    """Lens whose curved surfaces are cylinders with their axis along local y.

    Light is focused in the x-z plane only; the y component of the ray
    directions is left unchanged. Radii follow the sign convention of
    :class:`Lens`, an infinite radius gives a flat surface.
    """

    node_type = "cylindric_lens"

    def surface_geometry(self, radius_mm: float) -> GeoSurface:
        return Plane() if math.isinf(radius_mm) else Cylinder(radius_mm)


__all__ = ["CylindricLens"]
