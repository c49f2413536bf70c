"""Geometry model for geomcore.

This package provides the in-memory geometry tree: vertex arrays holding
arena-owned coordinates, the seven OGC shape kinds built from them, and
bounding-box computation over the tree.

Key Components:
    - VertexArray: Flat XY/XYZ/XYM/XYZM coordinate buffer
    - Point ... GeometryCollection: The tagged variant, ``Geometry``
    - BoundingBox / compute_bbox: Extent of a tree, empty-aware
    - Traversal helpers: vertex counts and pre-order vertex walks

Example:
    from geomcore.geometry import LineString, VertexArray, compute_bbox
    from geomcore.memory import Arena

    arena = Arena()
    line = LineString(VertexArray.copy(arena, [0, 0, 3, 4], 2))
    compute_bbox(line).to_tuple()  # (0.0, 0.0, 3.0, 4.0)
"""

from geomcore.geometry.bbox import BoundingBox, compute_bbox, fold_extent
from geomcore.geometry.shapes import (
    GEOMETRY_CLASSES,
    Geometry,
    GeometryCollection,
    LineString,
    MultiLineString,
    MultiPoint,
    MultiPolygon,
    Point,
    Polygon,
)
from geomcore.geometry.traversal import (
    check_depth,
    child_count,
    depth,
    iter_vertex_arrays,
    vertex_count,
)
from geomcore.geometry.types import (
    MAX_DEPTH,
    GeometryType,
    dimension,
    dimension_name,
    zm_suffix,
)
from geomcore.geometry.vertex_array import Vertex, VertexArray

__all__ = [
    "GEOMETRY_CLASSES",
    "MAX_DEPTH",
    "BoundingBox",
    "Geometry",
    "GeometryCollection",
    "GeometryType",
    "LineString",
    "MultiLineString",
    "MultiPoint",
    "MultiPolygon",
    "Point",
    "Polygon",
    "Vertex",
    "VertexArray",
    "check_depth",
    "child_count",
    "compute_bbox",
    "depth",
    "dimension",
    "dimension_name",
    "fold_extent",
    "iter_vertex_arrays",
    "vertex_count",
    "zm_suffix",
]
