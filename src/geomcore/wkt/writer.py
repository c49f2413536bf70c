"""Well-known text writer.

Produces the canonical form read back by ``WKTReader``: upper-case
keywords, a ``Z``/``M``/``ZM`` marker on every shape that has one, and
``EMPTY`` for shapes without vertices, so that writing and re-reading
yields an equal tree.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import Any, assert_never

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
from geomcore.geometry.types import zm_suffix
from geomcore.geometry.vertex_array import VertexArray

# Integral values below this magnitude are printed without a fraction
_MAX_EXACT_INTEGER = 2.0**53


def format_double(value: float, precision: int | None = None) -> str:
    """Format one ordinate.

    Args:
        value: The ordinate.
        precision: Significant digits, or None for the shortest string
            that round-trips exactly.
    """
    if precision is not None:
        return f"{value:.{precision}g}"
    if value.is_integer() and abs(value) < _MAX_EXACT_INTEGER:
        if value == 0 and math.copysign(1.0, value) < 0:
            return "-0"
        return str(int(value))
    return repr(value)


class WKTWriter:
    """Serializes a geometry tree to WKT."""

    def __init__(self, precision: int | None = None) -> None:
        if precision is not None and precision <= 0:
            raise ValueError(f"Precision must be positive, got {precision}")
        self.precision = precision

    def write(self, geom: Geometry) -> str:
        parts: list[str] = []
        self._write_geometry(geom, parts)
        return "".join(parts)

    def _write_vertex(self, vertex: tuple[float, ...], parts: list[str]) -> None:
        parts.append(" ".join(format_double(v, self.precision) for v in vertex))

    def _write_vertices(self, vertices: VertexArray, parts: list[str]) -> None:
        if vertices.is_empty:
            parts.append("EMPTY")
            return
        parts.append("(")
        for i, vertex in enumerate(vertices):
            if i:
                parts.append(", ")
            self._write_vertex(vertex, parts)
        parts.append(")")

    def _write_polygon_body(self, polygon: Polygon, parts: list[str]) -> None:
        if polygon.ring_count == 0:
            parts.append("EMPTY")
            return
        parts.append("(")
        for i, ring in enumerate(polygon):
            if i:
                parts.append(", ")
            self._write_vertices(ring, parts)
        parts.append(")")

    def _write_geometry(self, geom: Geometry, parts: list[str]) -> None:
        parts.append(geom.type.keyword)
        suffix = zm_suffix(geom.has_z, geom.has_m)
        if suffix:
            parts.append(f" {suffix}")
        parts.append(" ")

        match geom:
            case Point() | LineString():
                self._write_vertices(geom.vertices, parts)
            case Polygon():
                self._write_polygon_body(geom, parts)
            case MultiPoint():
                self._write_children(
                    geom, parts, lambda p: self._write_vertices(p.vertices, parts)
                )
            case MultiLineString():
                self._write_children(
                    geom, parts, lambda ls: self._write_vertices(ls.vertices, parts)
                )
            case MultiPolygon():
                self._write_children(
                    geom, parts, lambda poly: self._write_polygon_body(poly, parts)
                )
            case GeometryCollection():
                self._write_children(
                    geom, parts, lambda child: self._write_geometry(child, parts)
                )
            case _:
                assert_never(geom)

    def _write_children(
        self,
        geom: MultiPoint | MultiLineString | MultiPolygon | GeometryCollection,
        parts: list[str],
        write_child: Callable[[Any], None],
    ) -> None:
        if len(geom) == 0:
            parts.append("EMPTY")
            return
        parts.append("(")
        for i, child in enumerate(geom):
            if i:
                parts.append(", ")
            write_child(child)
        parts.append(")")


def write_wkt(geom: Geometry, precision: int | None = None) -> str:
    """Write ``geom`` as WKT.

    Example:
        >>> write_wkt(read_wkt("point z(1 2 3)", Arena()))
        'POINT Z (1 2 3)'
    """
    return WKTWriter(precision).write(geom)
