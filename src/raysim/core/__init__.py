"""Core utilities: coordinate frames, spectra and refractive indices."""

from .frames import Isometry, compose, look_along, to_world
from .refractive_index import ConstantIndex, RefractiveIndex, SellmeierIndex
from .spectrum import Spectrum, merge_spectra

__all__ = [
    "Isometry",
    "compose",
    "look_along",
    "to_world",
    "ConstantIndex",
    "RefractiveIndex",
    "SellmeierIndex",
    "Spectrum",
    "merge_spectra",
]
