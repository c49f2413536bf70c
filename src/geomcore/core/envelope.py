"""Rectangular polygons built from extents.

``envelope`` turns the bounding box of a geometry into a polygon and
``tile_envelope`` builds the extent of an XYZ map tile, by default in
Web Mercator (EPSG:3857) meters.
"""

from __future__ import annotations

import math

from geomcore.geometry.bbox import BoundingBox, compute_bbox
from geomcore.geometry.shapes import Geometry, Polygon
from geomcore.geometry.vertex_array import VertexArray
from geomcore.memory.arena import Arena

MAX_ZOOM = 30

# Half the equatorial circumference of the WGS84 sphere used by EPSG:3857
WEB_MERCATOR_HALF_EXTENT = math.pi * 6378137.0

WEB_MERCATOR_BOUNDS = BoundingBox(
    min_x=-WEB_MERCATOR_HALF_EXTENT,
    min_y=-WEB_MERCATOR_HALF_EXTENT,
    max_x=WEB_MERCATOR_HALF_EXTENT,
    max_y=WEB_MERCATOR_HALF_EXTENT,
)


def box_polygon(
    arena: Arena, min_x: float, min_y: float, max_x: float, max_y: float
) -> Polygon:
    """Build a closed, counter-clockwise rectangle."""
    corners = (
        (min_x, min_y),
        (max_x, min_y),
        (max_x, max_y),
        (min_x, max_y),
        (min_x, min_y),
    )
    shell = VertexArray.allocate(arena, len(corners))
    for i, (x, y) in enumerate(corners):
        shell.set(i, 0, x)
        shell.set(i, 1, y)
    polygon = Polygon(1)
    polygon[0] = shell
    return polygon


def envelope(geom: Geometry, arena: Arena) -> Polygon:
    """Polygon covering the XY bounding box of ``geom``.

    An empty geometry yields an empty polygon. Points and axis-aligned
    lines yield a degenerate (zero-area) rectangle.
    """
    bbox = compute_bbox(geom)
    if bbox.is_empty:
        return Polygon.empty()
    return box_polygon(arena, bbox.min_x, bbox.min_y, bbox.max_x, bbox.max_y)


def tile_envelope(
    zoom: int,
    x: int,
    y: int,
    arena: Arena,
    bounds: BoundingBox = WEB_MERCATOR_BOUNDS,
) -> Polygon:
    """Extent of tile ``(zoom, x, y)``, with y counted down from the top edge.

    Args:
        zoom: Zoom level, 0 to MAX_ZOOM.
        x: Tile column, 0 to 2**zoom - 1.
        y: Tile row, 0 to 2**zoom - 1.
        arena: Arena owning the result.
        bounds: Extent of the whole tile grid. Defaults to Web Mercator.

    Raises:
        ValueError: If the zoom or tile indices are out of range, or the
            bounds are empty.
    """
    if not 0 <= zoom <= MAX_ZOOM:
        raise ValueError(f"Zoom {zoom} out of range [0, {MAX_ZOOM}]")
    tiles = 1 << zoom
    if not 0 <= x < tiles or not 0 <= y < tiles:
        raise ValueError(
            f"Tile ({x}, {y}) out of range [0, {tiles - 1}] at zoom {zoom}"
        )
    if bounds.is_empty:
        raise ValueError("Tile grid bounds must not be empty")

    tile_width = bounds.width / tiles
    tile_height = bounds.height / tiles
    min_x = bounds.min_x + x * tile_width
    max_y = bounds.max_y - y * tile_height
    return box_polygon(arena, min_x, max_y - tile_height, min_x + tile_width, max_y)
