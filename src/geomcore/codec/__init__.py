"""Binary codecs for geometry trees.

Key Components:
    - geometry_t (blob): compact storage form with a cached bounding box
    - WKB: ISO well-known binary for interchange with external libraries

Example:
    from geomcore.codec import deserialize, serialize
    from geomcore.memory import Arena
    from geomcore.wkt import read_wkt

    arena = Arena()
    blob = serialize(read_wkt("LINESTRING(0 0, 1 1)", arena))
    assert deserialize(blob, arena) == read_wkt("LINESTRING(0 0, 1 1)", arena)
"""

from geomcore.codec.blob import (
    FORMAT_VERSION,
    deserialize,
    peek_type,
    serialize,
    serialized_size,
    try_get_serialized_bbox,
)
from geomcore.codec.wkb import iso_type_code, read_ewkb, read_wkb, write_wkb

__all__ = [
    "FORMAT_VERSION",
    "deserialize",
    "iso_type_code",
    "peek_type",
    "read_ewkb",
    "read_wkb",
    "serialize",
    "serialized_size",
    "try_get_serialized_bbox",
    "write_wkb",
]
