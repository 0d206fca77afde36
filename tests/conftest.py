import os
import random

import numpy as np
import pytest

from opticore.core.config import RayTraceConfig
from raysim.core.frames import Isometry
from raysim.graph.optic_graph import OpticGraph
from raysim.nodes.source import Source
from raysim.rays.bundle import RayBundle
from raysim.rays.distribution import Hexapolar


def pytest_configure(config: pytest.Config) -> None:  # noqa: ARG001
    config.addinivalue_line("markers", "gpu: marks tests that require a CUDA GPU")


@pytest.fixture(autouse=True)
def seed_rng() -> None:
    random.seed(0)
    np.random.seed(0)
    os.environ["PYTHONHASHSEED"] = "0"


@pytest.fixture()
def raytrace_config() -> RayTraceConfig:
    return RayTraceConfig(min_energy_per_ray_j=0.0)


@pytest.fixture()
def collimated_bundle() -> RayBundle:
    """37 rays on a 1 mm hexapolar pattern, 1 J in total, along +z."""
    dist = Hexapolar(radius_mm=1.0, nr_of_rings=3)
    return RayBundle.new_collimated(dist, 1000.0, 1.0)


@pytest.fixture()
def source(collimated_bundle: RayBundle) -> Source:
    return Source("src", rays=collimated_bundle, isometry=Isometry.identity())


@pytest.fixture()
def graph() -> OpticGraph:
    return OpticGraph()
