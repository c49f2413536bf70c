"""Unit tests for generic tree walks."""

from __future__ import annotations

import pytest

from geomcore.exceptions import GeometryNestingError
from geomcore.geometry import (
    MAX_DEPTH,
    GeometryCollection,
    check_depth,
    child_count,
    depth,
    iter_vertex_arrays,
    vertex_count,
)
from geomcore.memory import Arena
from geomcore.wkt import read_wkt


class TestTraversal:
    def test_vertex_count(self, arena: Arena) -> None:
        geom = read_wkt(
            "GEOMETRYCOLLECTION(POINT(0 0), LINESTRING(0 0, 1 1), "
            "POLYGON((0 0, 1 0, 1 1, 0 0)))",
            arena,
        )
        assert vertex_count(geom) == 7

    def test_iter_vertex_arrays_is_pre_order(self, arena: Arena) -> None:
        geom = read_wkt("MULTILINESTRING((0 0, 1 1), (2 2, 3 3, 4 4))", arena)
        counts = [array.count for array in iter_vertex_arrays(geom)]
        assert counts == [2, 3]

    def test_child_count(self, arena: Arena) -> None:
        assert child_count(read_wkt("POINT EMPTY", arena)) == 0
        assert child_count(read_wkt("LINESTRING(0 0, 1 1, 2 2)", arena)) == 3
        assert child_count(read_wkt("POLYGON((0 0, 1 0, 0 0), EMPTY)", arena)) == 2
        assert child_count(read_wkt("MULTIPOINT(1 2, 3 4)", arena)) == 2

    def test_depth(self, arena: Arena) -> None:
        assert depth(read_wkt("MULTIPOLYGON EMPTY", arena)) == 1
        assert depth(read_wkt("GEOMETRYCOLLECTION EMPTY", arena)) == 1
        nested = read_wkt(
            "GEOMETRYCOLLECTION(GEOMETRYCOLLECTION(GEOMETRYCOLLECTION(POINT(1 2))))",
            arena,
        )
        assert depth(nested) == 4
        assert depth(read_wkt("MULTIPOINT(1 2)", arena)) == 2
        assert depth(read_wkt("GEOMETRYCOLLECTION(MULTIPOINT EMPTY)", arena)) == 2

    def test_check_depth_catches_trees_deepened_after_assembly(self) -> None:
        innermost = GeometryCollection(1)
        geom = innermost
        for _ in range(MAX_DEPTH - 2):
            geom = GeometryCollection.from_children([geom])
        assert depth(geom) == MAX_DEPTH
        check_depth(geom)

        innermost[0] = GeometryCollection.from_children([GeometryCollection.empty()])
        with pytest.raises(GeometryNestingError, match="limit is"):
            check_depth(geom)
