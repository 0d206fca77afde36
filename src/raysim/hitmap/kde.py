"""Gaussian kernel density estimation of fluence.

Each hit point contributes ``E / (2 pi h^2) * exp(-d^2 / (2 h^2))`` to the
fluence at distance ``d``, with one bandwidth ``h`` for all samples (Silverman
rule over the pairwise sample distances). Grid columns are independent and
are evaluated in a thread pool. The optional torch backend evaluates the same
sum on a torch device.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import numpy as np
from scipy.spatial.distance import pdist

from opticore.core.errors import AnalysisError, BackendError
from raysim.hitmap.fluence import BoundingBox, bounding_box

# pdist is quadratic in memory, larger sets are subsampled
MAX_BANDWIDTH_SAMPLES = 2000

# Default map extends this many bandwidths beyond the samples
BOX_PADDING_BANDWIDTHS = 3.0

# J/mm^2 -> J/cm^2
PER_MM2_TO_PER_CM2 = 100.0


def silverman_bandwidth(points: np.ndarray, seed: int = 0) -> float:
    """Bandwidth ``0.9 * min(sigma, IQR / 1.34) * N^(-1/5)`` in mm.

    Raises:
        AnalysisError: If fewer than 2 samples are given or the estimate is not positive
    """
    points = np.asarray(points, dtype=np.float64)
    n = len(points)
    if n < 2:
        raise AnalysisError("at least 2 hit points are needed for a bandwidth estimate")
    if n > MAX_BANDWIDTH_SAMPLES:
        rng = np.random.default_rng(seed)
        points = points[rng.choice(n, MAX_BANDWIDTH_SAMPLES, replace=False)]
    distances = pdist(points)
    sigma = float(np.std(distances))
    q75, q25 = np.percentile(distances, [75.0, 25.0])
    spread = min(sigma, float(q75 - q25) / 1.34)
    if spread <= 0.0:
        spread = sigma
    h = 0.9 * spread * n ** (-0.2)
    if not np.isfinite(h) or h <= 0.0:
        raise AnalysisError("kernel bandwidth estimate is not positive")
    return h


def kde_bounding_box(points: np.ndarray, bandwidth: float) -> BoundingBox:
    """Sample bounding box padded by a few bandwidths."""
    x_min, x_max, y_min, y_max = bounding_box(points)
    pad = BOX_PADDING_BANDWIDTHS * bandwidth
    return x_min - pad, x_max + pad, y_min - pad, y_max + pad


def _column(x: float, y_axis: np.ndarray, points: np.ndarray, energies: np.ndarray, h: float) -> np.ndarray:
    dx2 = (points[:, 0] - x) ** 2
    dy2 = (y_axis[:, None] - points[None, :, 1]) ** 2
    weights = np.exp(-(dx2[None, :] + dy2) / (2.0 * h * h))
    return weights @ energies


def kde(
    points: np.ndarray,
    energies: np.ndarray,
    x_axis: np.ndarray,
    y_axis: np.ndarray,
    bandwidth: float | None = None,
    max_workers: int | None = None,
) -> np.ndarray:
    """Kernel density fluence map (J/cm^2) of shape (ny, nx).

    Args:
        points: Sample positions in mm, shape (N, 2)
        energies: Sample energies in J
        x_axis: Grid x coordinates
        y_axis: Grid y coordinates
        bandwidth: Kernel width in mm, Silverman estimate if None
        max_workers: Thread pool size
    """
    points = np.asarray(points, dtype=np.float64)
    energies = np.asarray(energies, dtype=np.float64)
    h = silverman_bandwidth(points) if bandwidth is None else float(bandwidth)
    if h <= 0.0:
        raise AnalysisError("kernel bandwidth must be positive")

    result = np.zeros((len(y_axis), len(x_axis)))
    with ThreadPoolExecutor(max_workers=max_workers) as ex:
        columns = ex.map(lambda x: _column(x, y_axis, points, energies, h), x_axis)
        for i, col in enumerate(columns):
            result[:, i] = col
    return result / (2.0 * np.pi * h * h) * PER_MM2_TO_PER_CM2


def kde_torch(
    points: np.ndarray,
    energies: np.ndarray,
    x_axis: np.ndarray,
    y_axis: np.ndarray,
    bandwidth: float | None = None,
    device: str = "cpu",
) -> np.ndarray:
    """Same estimate as :func:`kde` computed with torch.

    CUDA devices use float32, CPU float64.

    Raises:
        BackendError: If torch is not installed or the device is unavailable
    """
    try:
        import torch
    except ImportError as e:
        raise BackendError("the torch backend requires the 'gpu' extra (torch)") from e

    dev = torch.device(device)
    if dev.type == "cuda" and not torch.cuda.is_available():
        raise BackendError("CUDA device requested but not available")
    dtype = torch.float32 if dev.type == "cuda" else torch.float64

    points = np.asarray(points, dtype=np.float64)
    h = silverman_bandwidth(points) if bandwidth is None else float(bandwidth)
    if h <= 0.0:
        raise AnalysisError("kernel bandwidth must be positive")

    p = torch.as_tensor(points, dtype=dtype, device=dev)
    e = torch.as_tensor(np.asarray(energies, dtype=np.float64), dtype=dtype, device=dev)
    xs = torch.as_tensor(np.asarray(x_axis), dtype=dtype, device=dev)
    ys = torch.as_tensor(np.asarray(y_axis), dtype=dtype, device=dev)

    dy2 = (ys[:, None] - p[None, :, 1]) ** 2
    dx2 = (xs[:, None] - p[None, :, 0]) ** 2
    # (ny, nx, N)
    weights = torch.exp(-(dy2[:, None, :] + dx2[None, :, :]) / (2.0 * h * h))
    result = (weights * e).sum(dim=-1) / (2.0 * np.pi * h * h) * PER_MM2_TO_PER_CM2
    return result.cpu().numpy().astype(np.float64)


__all__ = [
    "silverman_bandwidth",
    "kde_bounding_box",
    "kde",
    "kde_torch",
]
