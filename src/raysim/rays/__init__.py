"""Rays, ray bundles and energy splitting."""

from raysim.rays.bundle import RayBundle
from raysim.rays.distribution import Grid, Hexapolar, RandomDisk
from raysim.rays.ray import Ray
from raysim.rays.splitting import ConstantFilter, RatioSplit, SpectrumFilter, SpectrumSplit

__all__ = [
    "Ray",
    "RayBundle",
    "Hexapolar",
    "Grid",
    "RandomDisk",
    "RatioSplit",
    "SpectrumSplit",
    "ConstantFilter",
    "SpectrumFilter",
]
