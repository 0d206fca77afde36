"""Geometric surfaces, apertures, coatings and optical surfaces."""

from raysim.surfaces.aperture import (
    Aperture,
    ApertureType,
    CircleAperture,
    GaussianAperture,
    NoAperture,
    PolygonAperture,
    RectangleAperture,
    StackAperture,
)
from raysim.surfaces.coating import ConstantR, Fresnel, IdealAR
from raysim.surfaces.geometry import Cylinder, GeoSurface, Parabola, Plane, Sphere, SurfaceKind
from raysim.surfaces.optic_surface import OpticSurface

__all__ = [
    "Aperture",
    "ApertureType",
    "CircleAperture",
    "GaussianAperture",
    "NoAperture",
    "PolygonAperture",
    "RectangleAperture",
    "StackAperture",
    "ConstantR",
    "Fresnel",
    "IdealAR",
    "Cylinder",
    "GeoSurface",
    "Parabola",
    "Plane",
    "Sphere",
    "SurfaceKind",
    "OpticSurface",
]
