"""Batch boundary and geometry constructors built on the model."""

from geomcore.core.batch import BatchContext, BatchResult, RowError
from geomcore.core.envelope import (
    WEB_MERCATOR_BOUNDS,
    box_polygon,
    envelope,
    tile_envelope,
)

__all__ = [
    "WEB_MERCATOR_BOUNDS",
    "BatchContext",
    "BatchResult",
    "RowError",
    "box_polygon",
    "envelope",
    "tile_envelope",
]
