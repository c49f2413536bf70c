"""geometry_t: the storage representation of a geometry tree.

Layout (all integers and doubles little endian)::

    header  u8 type | u8 flags | u8 version | u8 reserved | u32 reserved
    bbox    f64 min_x, min_y, max_x, max_y [, min_z, max_z]   (if FLAG_BBOX)
    body    u32 type | u32 count | payload                     (pre-order)

    Point, LineString   count vertices of packed f64 (x, y, [z], [m])
    Polygon             count ring sizes (u32), padded to 8 bytes,
                        then the vertices of every ring
    Multi*, Collection  count child bodies

The size of the output is computed up front and the bytes are written in
a single pass into a pre-sized buffer. Decoding validates every count
against the remaining buffer before touching it.
"""

from __future__ import annotations

import struct
from typing import assert_never

import numpy as np

from geomcore.exceptions import GeometryDecodeError
from geomcore.geometry.bbox import BoundingBox, compute_bbox
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
from geomcore.geometry.types import MAX_DEPTH, GeometryType, dimension
from geomcore.geometry.vertex_array import VertexArray
from geomcore.memory.arena import Arena

FORMAT_VERSION = 1

FLAG_Z = 0x01
FLAG_M = 0x02
FLAG_BBOX = 0x04
_KNOWN_FLAGS = FLAG_Z | FLAG_M | FLAG_BBOX

HEADER_SIZE = 8

_HEADER = struct.Struct("<BBBBI")
_U32 = struct.Struct("<I")
_TAG = struct.Struct("<II")


def _bbox_size(has_z: bool) -> int:
    return (6 if has_z else 4) * 8


def _body_size(geom: Geometry, vertex_size: int) -> int:
    match geom:
        case Point() | LineString():
            return 8 + geom.vertices.count * vertex_size
        case Polygon():
            rings = geom.ring_count
            size = 8 + 4 * rings + (4 if rings % 2 else 0)
            return size + sum(ring.count for ring in geom) * vertex_size
        case MultiPoint() | MultiLineString() | MultiPolygon() | GeometryCollection():
            return 8 + sum(_body_size(child, vertex_size) for child in geom)
        case _:
            assert_never(geom)


def _header_bbox(geom: Geometry) -> BoundingBox | None:
    # Points carry their own extent; empty trees have none
    if isinstance(geom, Point):
        return None
    bbox = compute_bbox(geom)
    return None if bbox.is_empty else bbox


def _layout(geom: Geometry) -> tuple[BoundingBox | None, int]:
    vertex_size = dimension(geom.has_z, geom.has_m) * 8
    bbox = _header_bbox(geom)
    size = HEADER_SIZE + _body_size(geom, vertex_size)
    if bbox is not None:
        size += _bbox_size(geom.has_z)
    return bbox, size


def serialized_size(geom: Geometry) -> int:
    """Exact number of bytes ``serialize(geom)`` produces."""
    return _layout(geom)[1]


class _BlobWriter:
    def __init__(self, size: int) -> None:
        self.buffer = bytearray(size)
        self.offset = 0

    def write_header(self, geom: Geometry, bbox: BoundingBox | None) -> None:
        flags = (FLAG_Z if geom.has_z else 0) | (FLAG_M if geom.has_m else 0)
        if bbox is not None:
            flags |= FLAG_BBOX
        _HEADER.pack_into(self.buffer, 0, int(geom.type), flags, FORMAT_VERSION, 0, 0)
        self.offset = HEADER_SIZE
        if bbox is not None:
            values = [bbox.min_x, bbox.min_y, bbox.max_x, bbox.max_y]
            if geom.has_z:
                values += [bbox.min_z, bbox.max_z]
            struct.pack_into(f"<{len(values)}d", self.buffer, self.offset, *values)
            self.offset += len(values) * 8

    def write_tag(self, kind: GeometryType, count: int) -> None:
        _TAG.pack_into(self.buffer, self.offset, int(kind), count)
        self.offset += 8

    def write_vertices(self, vertices: VertexArray) -> None:
        if vertices.is_empty:
            return
        data = vertices.coords.astype("<f8", copy=False).tobytes()
        self.buffer[self.offset : self.offset + len(data)] = data
        self.offset += len(data)

    def write_geometry(self, geom: Geometry) -> None:
        match geom:
            case Point() | LineString():
                self.write_tag(geom.type, geom.vertices.count)
                self.write_vertices(geom.vertices)
            case Polygon():
                self.write_tag(geom.type, geom.ring_count)
                for ring in geom:
                    _U32.pack_into(self.buffer, self.offset, ring.count)
                    self.offset += 4
                if geom.ring_count % 2:
                    self.offset += 4
                for ring in geom:
                    self.write_vertices(ring)
            case MultiPoint() | MultiLineString() | MultiPolygon() | GeometryCollection():
                self.write_tag(geom.type, len(geom))
                for child in geom:
                    self.write_geometry(child)
            case _:
                assert_never(geom)


def serialize(geom: Geometry) -> bytes:
    """Serialize a geometry tree into a geometry_t blob.

    The output is deterministic: the same tree always yields the same bytes.

    Raises:
        GeometryNestingError: If the tree is deeper than ``MAX_DEPTH``.
    """
    check_depth(geom)
    bbox, size = _layout(geom)
    writer = _BlobWriter(size)
    writer.write_header(geom, bbox)
    writer.write_geometry(geom)
    return bytes(writer.buffer)


class _BlobReader:
    def __init__(self, data: memoryview, arena: Arena | None = None) -> None:
        self.data = data
        self.arena = arena
        self.offset = 0
        self.has_z = False
        self.has_m = False
        self.has_bbox = False

    def fail(self, message: str, offset: int | None = None) -> GeometryDecodeError:
        return GeometryDecodeError(
            message, offset=self.offset if offset is None else offset
        )

    def require(self, size: int, what: str) -> None:
        remaining = len(self.data) - self.offset
        if size > remaining:
            raise self.fail(
                f"Truncated geometry: {what} needs {size} bytes, {remaining} remain"
            )

    def read_tag(self) -> tuple[GeometryType, int]:
        self.require(8, "geometry tag")
        raw_type, count = _TAG.unpack_from(self.data, self.offset)
        if raw_type > GeometryType.GEOMETRYCOLLECTION:
            raise self.fail(f"Unknown geometry type tag {raw_type}")
        self.offset += 8
        return GeometryType(raw_type), int(count)

    def read_header(self) -> GeometryType:
        if len(self.data) < HEADER_SIZE:
            raise self.fail(
                f"Truncated header: expected {HEADER_SIZE} bytes, got {len(self.data)}"
            )
        raw_type, flags, version, _, _ = _HEADER.unpack_from(self.data, 0)
        if version != FORMAT_VERSION:
            raise self.fail(f"Unsupported geometry format version {version}", 2)
        if raw_type > GeometryType.GEOMETRYCOLLECTION:
            raise self.fail(f"Unknown geometry type tag {raw_type}", 0)
        if flags & ~_KNOWN_FLAGS:
            raise self.fail(f"Unknown header flags {flags:#04x}", 1)
        self.has_z = bool(flags & FLAG_Z)
        self.has_m = bool(flags & FLAG_M)
        self.has_bbox = bool(flags & FLAG_BBOX)
        self.offset = HEADER_SIZE
        if self.has_bbox:
            size = _bbox_size(self.has_z)
            self.require(size, "bounding box")
            self.offset += size
        return GeometryType(raw_type)

    def read_vertices(self, count: int) -> VertexArray:
        size = count * dimension(self.has_z, self.has_m) * 8
        self.require(size, f"{count} vertices")
        raw = self.data[self.offset : self.offset + size]
        self.offset += size
        assert self.arena is not None
        return VertexArray.copy(self.arena, raw, count, self.has_z, self.has_m)

    def read_geometry(self, expected: GeometryType | None, depth: int) -> Geometry:
        if depth >= MAX_DEPTH:
            raise self.fail(f"Geometry nesting exceeds {MAX_DEPTH} levels")
        start = self.offset
        kind, count = self.read_tag()
        if expected is not None and kind is not expected:
            raise self.fail(
                f"Expected {expected.keyword} but found {kind.keyword}", start
            )
        has_z, has_m = self.has_z, self.has_m

        match kind:
            case GeometryType.POINT:
                if count > 1:
                    raise self.fail(f"Point with {count} vertices", start)
                return Point(self.read_vertices(count))
            case GeometryType.LINESTRING:
                return LineString(self.read_vertices(count))
            case GeometryType.POLYGON:
                return self.read_polygon(count)
            case GeometryType.MULTIPOINT:
                multi_point = MultiPoint(self.check_children(count), has_z, has_m)
                for i in range(count):
                    multi_point[i] = self.read_geometry(GeometryType.POINT, depth + 1)
                return multi_point
            case GeometryType.MULTILINESTRING:
                multi_line = MultiLineString(self.check_children(count), has_z, has_m)
                for i in range(count):
                    multi_line[i] = self.read_geometry(
                        GeometryType.LINESTRING, depth + 1
                    )
                return multi_line
            case GeometryType.MULTIPOLYGON:
                multi_polygon = MultiPolygon(self.check_children(count), has_z, has_m)
                for i in range(count):
                    multi_polygon[i] = self.read_geometry(
                        GeometryType.POLYGON, depth + 1
                    )
                return multi_polygon
            case GeometryType.GEOMETRYCOLLECTION:
                collection = GeometryCollection(
                    self.check_children(count), has_z, has_m
                )
                for i in range(count):
                    collection[i] = self.read_geometry(None, depth + 1)
                return collection
            case _:
                assert_never(kind)

    def check_children(self, count: int) -> int:
        # Every child needs at least its 8-byte tag
        self.require(count * 8, f"{count} children")
        return count

    def read_polygon(self, ring_count: int) -> Polygon:
        padded = 4 * ring_count + (4 if ring_count % 2 else 0)
        self.require(padded, f"{ring_count} ring sizes")
        ring_sizes = np.frombuffer(
            self.data, dtype="<u4", count=ring_count, offset=self.offset
        ).tolist()
        self.offset += padded
        vertex_size = dimension(self.has_z, self.has_m) * 8
        self.require(sum(ring_sizes) * vertex_size, "ring vertices")
        polygon = Polygon(ring_count, self.has_z, self.has_m)
        for i, size in enumerate(ring_sizes):
            polygon[i] = self.read_vertices(size)
        return polygon


def deserialize(blob: bytes | bytearray | memoryview, arena: Arena) -> Geometry:
    """Decode a geometry_t blob into a tree owned by ``arena``.

    Raises:
        GeometryDecodeError: If the blob is truncated, carries an unknown or
            inconsistent type tag, or has bytes after the geometry.
    """
    reader = _BlobReader(memoryview(blob).cast("B"), arena)
    root_type = reader.read_header()
    geom = reader.read_geometry(root_type, depth=0)
    if reader.offset != len(reader.data):
        raise reader.fail(
            f"Trailing bytes after geometry: {len(reader.data) - reader.offset}"
        )
    return geom


def peek_type(blob: bytes | bytearray | memoryview) -> tuple[GeometryType, bool, bool]:
    """Read ``(type, has_z, has_m)`` from the header without decoding the body."""
    reader = _BlobReader(memoryview(blob).cast("B"))
    kind = reader.read_header()
    return kind, reader.has_z, reader.has_m


def try_get_serialized_bbox(
    blob: bytes | bytearray | memoryview,
) -> BoundingBox | None:
    """Return the bounding box cached in the header, if any.

    Points and empty geometries carry no cached box; callers fall back to
    ``compute_bbox(deserialize(...))`` for those.
    """
    data = memoryview(blob).cast("B")
    reader = _BlobReader(data)
    reader.read_header()
    if not reader.has_bbox:
        return None
    if reader.has_z:
        min_x, min_y, max_x, max_y, min_z, max_z = struct.unpack_from(
            "<6d", data, HEADER_SIZE
        )
        return BoundingBox(
            min_x=min_x,
            min_y=min_y,
            max_x=max_x,
            max_y=max_y,
            min_z=min_z,
            max_z=max_z,
        )
    min_x, min_y, max_x, max_y = struct.unpack_from("<4d", data, HEADER_SIZE)
    return BoundingBox(min_x=min_x, min_y=min_y, max_x=max_x, max_y=max_y)
