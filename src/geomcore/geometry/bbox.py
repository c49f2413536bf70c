"""Axis-aligned bounding boxes computed by folding over a geometry tree.

A box is derived data: it is never stored on the tree and is recomputed
on demand. A tree without any vertex produces a box that is explicitly
empty (min greater than max), never a zero-sized box at the origin.
"""

from __future__ import annotations

import math
from typing import Self, assert_never

import numpy as np
from pydantic import BaseModel

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
from geomcore.geometry.vertex_array import VertexArray

# (min_x, min_y, max_x, max_y, min_z, max_z)
Extent = tuple[float, float, float, float, float, float]

_EMPTY_EXTENT: Extent = (math.inf, math.inf, -math.inf, -math.inf, math.inf, -math.inf)


class BoundingBox(BaseModel, frozen=True):
    """Per-axis min/max of a geometry, with optional Z range.

    The default instance is the empty box. Use ``is_empty`` before reading
    the bounds; ``to_tuple`` refuses to convert an empty box.

    Attributes:
        min_x: Smallest X ordinate.
        min_y: Smallest Y ordinate.
        max_x: Largest X ordinate.
        max_y: Largest Y ordinate.
        min_z: Smallest Z ordinate, None for 2D boxes.
        max_z: Largest Z ordinate, None for 2D boxes.
    """

    min_x: float = math.inf
    min_y: float = math.inf
    max_x: float = -math.inf
    max_y: float = -math.inf
    min_z: float | None = None
    max_z: float | None = None

    @classmethod
    def empty(cls, has_z: bool = False) -> Self:
        """Create an empty box, with an (empty) Z range if ``has_z``."""
        if has_z:
            return cls(min_z=math.inf, max_z=-math.inf)
        return cls()

    @classmethod
    def from_extent(cls, extent: Extent, has_z: bool) -> Self:
        min_x, min_y, max_x, max_y, min_z, max_z = extent
        return cls(
            min_x=min_x,
            min_y=min_y,
            max_x=max_x,
            max_y=max_y,
            min_z=min_z if has_z else None,
            max_z=max_z if has_z else None,
        )

    @property
    def is_empty(self) -> bool:
        return self.min_x > self.max_x or self.min_y > self.max_y

    @property
    def has_z(self) -> bool:
        return self.min_z is not None

    @property
    def width(self) -> float:
        return 0.0 if self.is_empty else self.max_x - self.min_x

    @property
    def height(self) -> float:
        return 0.0 if self.is_empty else self.max_y - self.min_y

    def to_tuple(self) -> tuple[float, ...]:
        """Convert to ``(min_x, min_y, max_x, max_y)``.

        Boxes with Z convert to ``(min_x, min_y, min_z, max_x, max_y, max_z)``.

        Raises:
            ValueError: If the box is empty.
        """
        if self.is_empty:
            raise ValueError("Empty bounding box has no extent")
        if self.min_z is not None and self.max_z is not None:
            return (
                self.min_x,
                self.min_y,
                self.min_z,
                self.max_x,
                self.max_y,
                self.max_z,
            )
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    def union(self, other: BoundingBox) -> BoundingBox:
        """Smallest box covering both boxes; Z is kept only if both have it."""
        has_z = self.has_z and other.has_z
        return BoundingBox(
            min_x=min(self.min_x, other.min_x),
            min_y=min(self.min_y, other.min_y),
            max_x=max(self.max_x, other.max_x),
            max_y=max(self.max_y, other.max_y),
            min_z=min(self.min_z, other.min_z) if has_z else None,  # type: ignore[type-var]
            max_z=max(self.max_z, other.max_z) if has_z else None,  # type: ignore[type-var]
        )

    def intersects(self, other: BoundingBox) -> bool:
        """Check whether two boxes overlap in X and Y (edges included)."""
        if self.is_empty or other.is_empty:
            return False
        return not (
            other.min_x > self.max_x
            or other.max_x < self.min_x
            or other.min_y > self.max_y
            or other.max_y < self.min_y
        )

    def contains(self, x: float, y: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y


def _extend(extent: Extent, vertices: VertexArray) -> Extent:
    if vertices.is_empty:
        return extent
    coords = vertices.coords
    # fmin/fmax skip NaN ordinates; a column of NaN leaves the extent alone
    low = np.fmin.reduce(coords, axis=0).tolist()
    high = np.fmax.reduce(coords, axis=0).tolist()
    min_z, max_z = extent[4], extent[5]
    if vertices.has_z:
        min_z = min(min_z, low[2])
        max_z = max(max_z, high[2])
    return (
        min(extent[0], low[0]),
        min(extent[1], low[1]),
        max(extent[2], high[0]),
        max(extent[3], high[1]),
        min_z,
        max_z,
    )


def fold_extent(geom: Geometry, extent: Extent = _EMPTY_EXTENT) -> Extent:
    """Fold ``geom`` into a running extent and return the new extent.

    Polygons contribute their shell only: holes lie inside the shell and
    can never grow the box.
    """
    match geom:
        case Point() | LineString():
            return _extend(extent, geom.vertices)
        case Polygon():
            if geom.ring_count == 0:
                return extent
            return _extend(extent, geom.shell)
        case MultiPoint() | MultiLineString() | MultiPolygon() | GeometryCollection():
            for child in geom:
                extent = fold_extent(child, extent)
            return extent
        case _:
            assert_never(geom)


def compute_bbox(geom: Geometry) -> BoundingBox:
    """Compute the bounding box of ``geom``.

    Returns:
        The box, with a Z range when the geometry has Z. The box is
        empty (``is_empty`` is True) when the tree has no vertices.
    """
    return BoundingBox.from_extent(fold_extent(geom), geom.has_z)
