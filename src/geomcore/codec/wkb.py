"""ISO well-known binary (WKB), the interchange form for external libraries.

Writing produces ISO WKB: a byte-order byte, a u32 type code of
``kind + 1 + 1000 * Z + 2000 * M`` and the standard payload. Empty points
have no WKB encoding of their own and are written as all-NaN coordinates.

Reading accepts either byte order (per geometry), ISO type codes and the
EWKB high-bit flags used by PostGIS (an embedded SRID is skipped). Every
nested geometry must share the dimensionality of the root.
"""

from __future__ import annotations

import math
import struct
from typing import Literal, TypeVar, assert_never

import numpy as np
import numpy.typing as npt

from geomcore.config import settings
from geomcore.exceptions import GeometryDecodeError
from geomcore.geometry.shapes import (
    Geometry,
    GeometryCollection,
    LineString,
    MultiLineString,
    MultiPoint,
    MultiPolygon,
    Point,
    Polygon,
)
from geomcore.geometry.traversal import check_depth
from geomcore.geometry.types import (
    MAX_DEPTH,
    GeometryType,
    dimension,
    dimension_name,
)
from geomcore.geometry.vertex_array import VertexArray
from geomcore.memory.arena import Arena

WKB_BIG_ENDIAN = 0
WKB_LITTLE_ENDIAN = 1

EWKB_Z_FLAG = 0x80000000
EWKB_M_FLAG = 0x40000000
EWKB_SRID_FLAG = 0x20000000

ByteOrder = Literal["little", "big"]

_CollectionT = TypeVar(
    "_CollectionT", MultiPoint, MultiLineString, MultiPolygon, GeometryCollection
)


def iso_type_code(kind: GeometryType, has_z: bool, has_m: bool) -> int:
    """ISO WKB type code, e.g. 1003 for POLYGON Z."""
    return int(kind) + 1 + (1000 if has_z else 0) + (2000 if has_m else 0)


class _WKBWriter:
    def __init__(self, byte_order: ByteOrder) -> None:
        self.prefix = "<" if byte_order == "little" else ">"
        self.order_byte = bytes(
            [WKB_LITTLE_ENDIAN if byte_order == "little" else WKB_BIG_ENDIAN]
        )
        self.u32 = struct.Struct(f"{self.prefix}I")
        self.parts: list[bytes] = []

    def write_header(self, geom: Geometry) -> None:
        self.parts.append(self.order_byte)
        self.parts.append(
            self.u32.pack(iso_type_code(geom.type, geom.has_z, geom.has_m))
        )

    def write_coords(self, vertices: VertexArray) -> None:
        if not vertices.is_empty:
            self.parts.append(
                vertices.coords.astype(f"{self.prefix}f8", copy=False).tobytes()
            )

    def write_vertices(self, vertices: VertexArray) -> None:
        self.parts.append(self.u32.pack(vertices.count))
        self.write_coords(vertices)

    def write_geometry(self, geom: Geometry) -> None:
        self.write_header(geom)
        match geom:
            case Point():
                if geom.is_empty:
                    dim = dimension(geom.has_z, geom.has_m)
                    self.parts.append(
                        struct.pack(f"{self.prefix}{dim}d", *([math.nan] * dim))
                    )
                else:
                    self.write_coords(geom.vertices)
            case LineString():
                self.write_vertices(geom.vertices)
            case Polygon():
                self.parts.append(self.u32.pack(geom.ring_count))
                for ring in geom:
                    self.write_vertices(ring)
            case MultiPoint() | MultiLineString() | MultiPolygon() | GeometryCollection():
                self.parts.append(self.u32.pack(len(geom)))
                for child in geom:
                    self.write_geometry(child)
            case _:
                assert_never(geom)


def write_wkb(geom: Geometry, byte_order: ByteOrder | None = None) -> bytes:
    """Encode ``geom`` as ISO WKB.

    Args:
        geom: Geometry to encode.
        byte_order: "little" or "big". Defaults to settings.WKB_BYTE_ORDER.

    Raises:
        GeometryNestingError: If the tree is deeper than ``MAX_DEPTH``.
    """
    check_depth(geom)
    writer = _WKBWriter(byte_order or settings.WKB_BYTE_ORDER)
    writer.write_geometry(geom)
    return b"".join(writer.parts)


class _WKBReader:
    def __init__(self, data: memoryview, arena: Arena) -> None:
        self.data = data
        self.arena = arena
        self.offset = 0
        self.dims: tuple[bool, bool] | None = None
        self.srid: int | None = None

    def fail(self, message: str, offset: int | None = None) -> GeometryDecodeError:
        return GeometryDecodeError(
            message, offset=self.offset if offset is None else offset
        )

    def require(self, size: int, what: str) -> None:
        remaining = len(self.data) - self.offset
        if size > remaining:
            raise self.fail(
                f"Truncated WKB: {what} needs {size} bytes, {remaining} remain"
            )

    def read_u32(self, prefix: str, what: str) -> int:
        self.require(4, what)
        (value,) = struct.unpack_from(f"{prefix}I", self.data, self.offset)
        self.offset += 4
        return int(value)

    def read_doubles(self, prefix: str, count: int) -> npt.NDArray[np.float64]:
        size = count * 8
        self.require(size, f"{count} doubles")
        values = np.frombuffer(
            self.data, dtype=f"{prefix}f8", count=count, offset=self.offset
        )
        self.offset += size
        return values

    def read_type(self, prefix: str) -> tuple[GeometryType, bool, bool]:
        start = self.offset
        code = self.read_u32(prefix, "type code")
        has_z = bool(code & EWKB_Z_FLAG)
        has_m = bool(code & EWKB_M_FLAG)
        has_srid = bool(code & EWKB_SRID_FLAG)
        base = code & 0x0FFFFFFF
        if base >= 1000:
            thousands, base = divmod(base, 1000)
            if thousands > 3:
                raise self.fail(f"Unknown WKB type code {code}", start)
            has_z = has_z or thousands in (1, 3)
            has_m = has_m or thousands in (2, 3)
        if not 1 <= base <= 7:
            raise self.fail(f"Unknown WKB type code {code}", start)
        if has_srid:
            srid = self.read_u32(prefix, "SRID")
            if self.srid is None:
                self.srid = srid
        return GeometryType(base - 1), has_z, has_m

    def read_vertex_array(self, prefix: str, count: int) -> VertexArray:
        has_z, has_m = self.dims or (False, False)
        dim = dimension(has_z, has_m)
        values = self.read_doubles(prefix, count * dim)
        return VertexArray.copy(self.arena, values, count, has_z, has_m)

    def read_geometry(
        self, expected: GeometryType | None = None, depth: int = 0
    ) -> Geometry:
        if depth >= MAX_DEPTH:
            raise self.fail(f"WKB nesting exceeds {MAX_DEPTH} levels")
        start = self.offset
        self.require(1, "byte order")
        order = self.data[self.offset]
        if order not in (WKB_BIG_ENDIAN, WKB_LITTLE_ENDIAN):
            raise self.fail(f"Invalid WKB byte order {order}")
        self.offset += 1
        prefix = "<" if order == WKB_LITTLE_ENDIAN else ">"

        kind, has_z, has_m = self.read_type(prefix)
        if expected is not None and kind is not expected:
            raise self.fail(
                f"Expected {expected.keyword} but found {kind.keyword}", start
            )
        if self.dims is None:
            self.dims = (has_z, has_m)
        elif self.dims != (has_z, has_m):
            raise self.fail(
                f"Mixed dimensions: {dimension_name(*self.dims)} geometry contains "
                f"{dimension_name(has_z, has_m)} {kind.keyword}",
                start,
            )

        match kind:
            case GeometryType.POINT:
                vertices = self.read_vertex_array(prefix, 1)
                if np.isnan(vertices.coords).all():
                    return Point.empty(has_z, has_m)
                return Point(vertices)
            case GeometryType.LINESTRING:
                count = self.read_u32(prefix, "vertex count")
                return LineString(self.read_vertex_array(prefix, count))
            case GeometryType.POLYGON:
                ring_count = self.read_u32(prefix, "ring count")
                self.require(ring_count * 4, f"{ring_count} rings")
                polygon = Polygon(ring_count, has_z, has_m)
                for i in range(ring_count):
                    count = self.read_u32(prefix, "ring size")
                    polygon[i] = self.read_vertex_array(prefix, count)
                return polygon
            case GeometryType.MULTIPOINT:
                return self.read_children(
                    MultiPoint, GeometryType.POINT, prefix, depth
                )
            case GeometryType.MULTILINESTRING:
                return self.read_children(
                    MultiLineString, GeometryType.LINESTRING, prefix, depth
                )
            case GeometryType.MULTIPOLYGON:
                return self.read_children(
                    MultiPolygon, GeometryType.POLYGON, prefix, depth
                )
            case GeometryType.GEOMETRYCOLLECTION:
                return self.read_children(GeometryCollection, None, prefix, depth)
            case _:
                assert_never(kind)

    def read_children(
        self,
        cls: type[_CollectionT],
        child_kind: GeometryType | None,
        prefix: str,
        depth: int,
    ) -> _CollectionT:
        count = self.read_u32(prefix, "child count")
        # Every child needs at least a byte-order byte and a type code
        self.require(count * 5, f"{count} children")
        has_z, has_m = self.dims or (False, False)
        collection = cls(count, has_z, has_m)
        for i in range(count):
            collection[i] = self.read_geometry(child_kind, depth + 1)
        return collection


def read_wkb(data: bytes | bytearray | memoryview, arena: Arena) -> Geometry:
    """Decode ISO WKB or EWKB into a tree owned by ``arena``.

    Raises:
        GeometryDecodeError: If the input is truncated, uses an unknown
            byte order or type code, mixes dimensions, or has trailing bytes.
    """
    return read_ewkb(data, arena)[1]


def read_ewkb(
    data: bytes | bytearray | memoryview, arena: Arena
) -> tuple[int | None, Geometry]:
    """Decode WKB/EWKB, returning ``(srid, geometry)``; srid is None if absent."""
    reader = _WKBReader(memoryview(data).cast("B"), arena)
    geom = reader.read_geometry()
    if reader.offset != len(reader.data):
        raise reader.fail(
            f"Trailing bytes after WKB geometry: {len(reader.data) - reader.offset}"
        )
    return reader.srid, geom
