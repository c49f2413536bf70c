"""geomcore: arena-backed geometry model with WKT and binary codecs.

Key Components:
- Arena: bump allocator that owns every vertex buffer of a batch
- Geometry tree: Point, LineString, Polygon, Multi* and GeometryCollection
- WKT reader/writer: text format with positional error messages
- geometry_t codec: single-pass binary storage format with cached bbox
- BatchContext: per-row error isolation over a reusable arena

Example:
    >>> from geomcore import Arena, read_wkt, serialize, deserialize
    >>> with Arena() as arena:
    ...     geom = read_wkt("LINESTRING(0 0, 1 1)", arena)
    ...     deserialize(serialize(geom), arena) == geom
    True
"""

from geomcore.codec import deserialize, read_wkb, serialize, write_wkb
from geomcore.core import BatchContext, envelope, tile_envelope
from geomcore.exceptions import (
    ArenaExhaustedError,
    DimensionMismatchError,
    GeometryDecodeError,
    GeometryError,
    GeometryNestingError,
    GeometryTypeError,
    WKTParseError,
)
from geomcore.geometry import BoundingBox, Geometry, GeometryType, compute_bbox
from geomcore.memory import Arena
from geomcore.wkt import read_wkt, write_wkt

__version__ = "0.1.0"

__all__ = [
    "Arena",
    "ArenaExhaustedError",
    "BatchContext",
    "BoundingBox",
    "DimensionMismatchError",
    "Geometry",
    "GeometryDecodeError",
    "GeometryError",
    "GeometryNestingError",
    "GeometryType",
    "GeometryTypeError",
    "WKTParseError",
    "__version__",
    "compute_bbox",
    "deserialize",
    "envelope",
    "read_wkb",
    "read_wkt",
    "serialize",
    "tile_envelope",
    "write_wkb",
    "write_wkt",
]
