"""Hit map storage and fluence estimation."""

from opticore.core.config import FluenceEstimator
from raysim.hitmap.fluence import FluenceData
from raysim.hitmap.hit_map import (
    CriticalFluence,
    EnergyHitPoint,
    HitMap,
    RaysHitMap,
    estimate_fluence,
)

__all__ = [
    "FluenceEstimator",
    "FluenceData",
    "EnergyHitPoint",
    "CriticalFluence",
    "RaysHitMap",
    "HitMap",
    "estimate_fluence",
]
