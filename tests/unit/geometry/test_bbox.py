"""Unit tests for bounding boxes."""

from __future__ import annotations

import math

import pytest
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError

from geomcore.geometry import (
    BoundingBox,
    GeometryCollection,
    LineString,
    MultiPoint,
    Point,
    Polygon,
    VertexArray,
    compute_bbox,
)
from geomcore.memory import Arena
from geomcore.wkt import read_wkt


class TestBoundingBoxModel:
    def test_default_is_empty(self) -> None:
        box = BoundingBox()
        assert box.is_empty
        assert not box.has_z
        assert box.width == 0.0

    def test_empty_with_z(self) -> None:
        box = BoundingBox.empty(has_z=True)
        assert box.is_empty
        assert box.has_z

    def test_to_tuple(self) -> None:
        box = BoundingBox(min_x=0, min_y=1, max_x=2, max_y=3)
        assert box.to_tuple() == (0, 1, 2, 3)

    def test_to_tuple_with_z(self) -> None:
        box = BoundingBox(min_x=0, min_y=1, max_x=2, max_y=3, min_z=4, max_z=5)
        assert box.to_tuple() == (0, 1, 4, 2, 3, 5)

    def test_to_tuple_rejects_empty(self) -> None:
        with pytest.raises(ValueError, match="Empty"):
            BoundingBox().to_tuple()

    def test_frozen(self) -> None:
        box = BoundingBox(min_x=0, min_y=0, max_x=1, max_y=1)
        with pytest.raises(ValidationError):
            box.min_x = 5  # type: ignore[misc]

    def test_union(self) -> None:
        a = BoundingBox(min_x=0, min_y=0, max_x=1, max_y=1)
        b = BoundingBox(min_x=2, min_y=-1, max_x=3, max_y=0.5)
        assert a.union(b).to_tuple() == (0, -1, 3, 1)
        assert a.union(BoundingBox()) == a

    def test_intersects_and_contains(self) -> None:
        a = BoundingBox(min_x=0, min_y=0, max_x=2, max_y=2)
        b = BoundingBox(min_x=2, min_y=2, max_x=3, max_y=3)
        c = BoundingBox(min_x=5, min_y=5, max_x=6, max_y=6)
        assert a.intersects(b)
        assert not a.intersects(c)
        assert not a.intersects(BoundingBox())
        assert a.contains(1, 1)
        assert not a.contains(3, 1)


class TestComputeBbox:
    def test_point(self, arena: Arena) -> None:
        box = compute_bbox(read_wkt("POINT(3 -4)", arena))
        assert box.to_tuple() == (3, -4, 3, -4)

    def test_polygon_uses_shell(self, arena: Arena) -> None:
        geom = read_wkt(
            "POLYGON((0 0, 10 0, 10 10, 0 10, 0 0), (2 2, 3 2, 3 3, 2 2))", arena
        )
        assert compute_bbox(geom).to_tuple() == (0, 0, 10, 10)

    def test_z_range(self, arena: Arena) -> None:
        geom = read_wkt("LINESTRING Z (0 0 5, 1 2 -1)", arena)
        box = compute_bbox(geom)
        assert box.to_tuple() == (0, 0, -1, 1, 2, 5)

    def test_m_is_ignored(self, arena: Arena) -> None:
        geom = read_wkt("LINESTRING M (0 0 100, 1 2 -100)", arena)
        box = compute_bbox(geom)
        assert not box.has_z
        assert box.to_tuple() == (0, 0, 1, 2)

    def test_nested_collection(self, arena: Arena) -> None:
        geom = read_wkt(
            "GEOMETRYCOLLECTION(POINT(-5 1), "
            "GEOMETRYCOLLECTION(LINESTRING(0 0, 4 9)), POINT EMPTY)",
            arena,
        )
        assert compute_bbox(geom).to_tuple() == (-5, 0, 4, 9)

    @pytest.mark.parametrize(
        "geom",
        [
            Point.empty(),
            LineString.empty(),
            Polygon.empty(),
            Polygon(2),
            MultiPoint(3),
            GeometryCollection.empty(),
        ],
    )
    def test_empty_geometries_have_empty_box(self, geom: object) -> None:
        assert compute_bbox(geom).is_empty  # type: ignore[arg-type]

    def test_nan_ordinates_are_skipped(self, arena: Arena) -> None:
        line = LineString(VertexArray.copy(arena, [0, 0, math.nan, 5, 2, 1], 3))
        assert compute_bbox(line).to_tuple() == (0, 0, 2, 5)

    @given(
        st.lists(
            st.tuples(
                st.floats(-1e9, 1e9, allow_nan=False),
                st.floats(-1e9, 1e9, allow_nan=False),
            ),
            min_size=1,
            max_size=20,
        )
    )
    def test_box_contains_every_vertex(
        self, vertices: list[tuple[float, float]]
    ) -> None:
        """Test that every vertex lies inside the computed box."""
        arena = Arena(block_size=1024)
        flat = [value for vertex in vertices for value in vertex]
        line = LineString(VertexArray.copy(arena, flat, len(vertices)))
        box = compute_bbox(line)
        for x, y in vertices:
            assert box.contains(x, y)
        assert box.min_x == min(x for x, _ in vertices)
        assert box.max_y == max(y for _, y in vertices)
