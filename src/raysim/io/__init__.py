"""Scenery documents and fluence export."""

from raysim.io.document import (
    SceneryDocument,
    load_document,
    round_trip_document,
    save_document,
)
from raysim.io.tiff import read_fluence_tiff, write_fluence_tiff

__all__ = [
    "SceneryDocument",
    "load_document",
    "save_document",
    "round_trip_document",
    "write_fluence_tiff",
    "read_fluence_tiff",
]
