"""Well-known text (WKT) reading and writing.

Example:
    from geomcore.memory import Arena
    from geomcore.wkt import read_wkt, write_wkt

    arena = Arena()
    geom = read_wkt("SRID=4326;MULTIPOINT(1 1, 2 2)", arena)
    write_wkt(geom)  # 'MULTIPOINT ((1 1), (2 2))'
"""

from geomcore.wkt.reader import WKTReader, read_ewkt, read_wkt
from geomcore.wkt.writer import WKTWriter, format_double, write_wkt

__all__ = [
    "WKTReader",
    "WKTWriter",
    "format_double",
    "read_ewkt",
    "read_wkt",
    "write_wkt",
]
