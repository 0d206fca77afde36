"""TIFF export of fluence maps.

Maps are written as single 32-bit float pages with the grid extent,
estimator and user metadata embedded as JSON in the ImageDescription tag.
"""

from __future__ import annotations

import json
import platform
from datetime import datetime
from pathlib import Path
from typing import Any

import numpy as np
import tifffile

from opticore.core.config import FluenceEstimator
from opticore.core.errors import IOError as ExportError
from raysim.hitmap.fluence import FluenceData


def _prepare_metadata(data: FluenceData, user_metadata: dict[str, Any] | None) -> dict[str, Any]:
    ny, nx = data.shape
    meta: dict[str, Any] = {
        "units": "J/cm^2",
        "length_units": "millimeters",
        "x_range_mm": list(data.x_range_mm),
        "y_range_mm": list(data.y_range_mm),
        "shape": [ny, nx],
        "estimator": data.estimator.value,
        "peak_fluence": data.peak(),
        "total_energy_j": data.total_energy(),
        "timestamp": datetime.now().isoformat(),
        "system": {
            "platform": platform.platform(),
            "python_version": platform.python_version(),
        },
    }
    if user_metadata:
        for key, value in user_metadata.items():
            if key not in meta:
                meta[key] = value
    return meta


def write_fluence_tiff(
    filename: str | Path, data: FluenceData, metadata: dict[str, Any] | None = None
) -> None:
    """Write a fluence map to a float32 TIFF.

    Args:
        filename: Output filename
        data: Fluence map
        metadata: Additional JSON serializable metadata
    """
    filename = Path(filename)
    filename.parent.mkdir(parents=True, exist_ok=True)
    meta = _prepare_metadata(data, metadata)
    ny, nx = data.shape
    dx_mm = (data.x_range_mm[1] - data.x_range_mm[0]) / max(nx - 1, 1)
    dy_mm = (data.y_range_mm[1] - data.y_range_mm[0]) / max(ny - 1, 1)
    # pixels per centimeter
    resolution = (10.0 / dx_mm if dx_mm > 0 else 1.0, 10.0 / dy_mm if dy_mm > 0 else 1.0)
    tifffile.imwrite(
        filename,
        np.nan_to_num(data.fluence).astype(np.float32),
        resolution=resolution,
        resolutionunit="CENTIMETER",
        description=json.dumps(meta, indent=2),
        metadata=None,
    )


def read_fluence_tiff(filename: str | Path) -> tuple[FluenceData, dict[str, Any]]:
    """Read a map written by ``write_fluence_tiff``.

    Returns:
        Tuple of (fluence data, metadata)

    Raises:
        IOError: If the file carries no fluence metadata
    """
    with tifffile.TiffFile(filename) as tif:
        image = tif.asarray()
        description = tif.pages[0].description
    try:
        meta = json.loads(description)
    except json.JSONDecodeError as e:
        raise ExportError(f"{filename} has no fluence metadata") from e
    if "x_range_mm" not in meta:
        raise ExportError(f"{filename} has no fluence metadata")
    data = FluenceData(
        np.asarray(image, dtype=np.float64),
        tuple(meta["x_range_mm"]),  # type: ignore[arg-type]
        tuple(meta["y_range_mm"]),  # type: ignore[arg-type]
        FluenceEstimator(meta["estimator"]),
    )
    return data, meta


__all__ = ["write_fluence_tiff", "read_fluence_tiff"]
