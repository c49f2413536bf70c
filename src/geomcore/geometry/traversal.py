"""Generic read-only walks over a geometry tree."""

from __future__ import annotations

from collections.abc import Iterator
from typing import assert_never

from geomcore.exceptions import GeometryNestingError
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
from geomcore.geometry.types import MAX_DEPTH
from geomcore.geometry.vertex_array import VertexArray


def iter_vertex_arrays(geom: Geometry) -> Iterator[VertexArray]:
    """Yield every vertex array of the tree in pre-order."""
    match geom:
        case Point() | LineString():
            yield geom.vertices
        case Polygon():
            yield from geom
        case MultiPoint() | MultiLineString() | MultiPolygon() | GeometryCollection():
            for child in geom:
                yield from iter_vertex_arrays(child)
        case _:
            assert_never(geom)


def vertex_count(geom: Geometry) -> int:
    """Total number of vertices in the tree."""
    return sum(array.count for array in iter_vertex_arrays(geom))


def child_count(geom: Geometry) -> int:
    """Number of direct parts: vertices, rings or children depending on kind."""
    match geom:
        case Point() | LineString():
            return geom.vertices.count
        case Polygon():
            return geom.ring_count
        case MultiPoint() | MultiLineString() | MultiPolygon() | GeometryCollection():
            return len(geom)
        case _:
            assert_never(geom)


def depth(geom: Geometry) -> int:
    """Number of levels from ``geom`` down to its deepest child.

    Leaves and empty collections count 1; every level of children adds 1,
    so ``MULTIPOINT(1 2)`` is 2 deep. This is the measure ``MAX_DEPTH``
    bounds.
    """
    match geom:
        case Point() | LineString() | Polygon():
            return 1
        case MultiPoint() | MultiLineString() | MultiPolygon():
            return 2 if len(geom) else 1
        case GeometryCollection():
            return 1 + max((depth(child) for child in geom), default=0)
        case _:
            assert_never(geom)


def check_depth(geom: Geometry) -> None:
    """Raise ``GeometryNestingError`` if ``geom`` is deeper than ``MAX_DEPTH``.

    Constructors already refuse such children; this catches trees whose
    children were deepened after being attached to their parent.
    """
    levels = depth(geom)
    if levels > MAX_DEPTH:
        raise GeometryNestingError(
            f"Geometry nests {levels} levels deep, limit is {MAX_DEPTH}"
        )
