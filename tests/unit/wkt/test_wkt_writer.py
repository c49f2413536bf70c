"""Unit tests for the WKT writer."""

from __future__ import annotations

import math

import pytest
from hypothesis import given
from hypothesis import strategies as st

from geomcore.geometry import GeometryCollection, LineString, Point, VertexArray
from geomcore.memory import Arena
from geomcore.wkt import WKTWriter, format_double, read_wkt, write_wkt


class TestFormatDouble:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (1.0, "1"),
            (-3.0, "-3"),
            (0.0, "0"),
            (-0.0, "-0"),
            (0.1, "0.1"),
            (1e20, "1e+20"),
            (math.inf, "inf"),
            (-math.inf, "-inf"),
            (math.nan, "nan"),
        ],
    )
    def test_shortest_form(self, value: float, expected: str) -> None:
        assert format_double(value) == expected

    def test_precision(self) -> None:
        assert format_double(1 / 3, precision=3) == "0.333"
        assert format_double(123456.0, precision=2) == "1.2e+05"

    @given(st.floats(allow_nan=False))
    def test_shortest_form_round_trips(self, value: float) -> None:
        assert float(format_double(value)) == value


class TestWriteWkt:
    @pytest.mark.parametrize(
        ("wkt", "expected"),
        [
            ("POINT(1 2)", "POINT (1 2)"),
            ("point z(1 2 3)", "POINT Z (1 2 3)"),
            ("POINT M (1 2 3)", "POINT M (1 2 3)"),
            ("POINT EMPTY", "POINT EMPTY"),
            ("LINESTRING ZM EMPTY", "LINESTRING ZM EMPTY"),
            ("LINESTRING(0 0,1.5 1)", "LINESTRING (0 0, 1.5 1)"),
            ("POLYGON EMPTY", "POLYGON EMPTY"),
            (
                "POLYGON((0 0,1 0,1 1,0 0),EMPTY)",
                "POLYGON ((0 0, 1 0, 1 1, 0 0), EMPTY)",
            ),
            ("MULTIPOINT(1 2, EMPTY)", "MULTIPOINT ((1 2), EMPTY)"),
            ("MULTILINESTRING((0 0,1 1))", "MULTILINESTRING ((0 0, 1 1))"),
            (
                "MULTIPOLYGON(((0 0,1 0,1 1,0 0)),EMPTY)",
                "MULTIPOLYGON (((0 0, 1 0, 1 1, 0 0)), EMPTY)",
            ),
            (
                "GEOMETRYCOLLECTION(POINT Z(1 2 3),POINT Z(4 5 6))",
                "GEOMETRYCOLLECTION Z (POINT Z (1 2 3), POINT Z (4 5 6))",
            ),
            ("GEOMETRYCOLLECTION EMPTY", "GEOMETRYCOLLECTION EMPTY"),
        ],
    )
    def test_canonical_form(self, arena: Arena, wkt: str, expected: str) -> None:
        assert write_wkt(read_wkt(wkt, arena)) == expected

    def test_writer_precision(self, arena: Arena) -> None:
        line = LineString(VertexArray.copy(arena, [1 / 3, 2 / 3, 1.0, 2.0], 2))
        assert WKTWriter(precision=4).write(line) == "LINESTRING (0.3333 0.6667, 1 2)"

    def test_writer_rejects_bad_precision(self) -> None:
        with pytest.raises(ValueError):
            WKTWriter(precision=0)

    def test_hand_built_tree(self, arena: Arena) -> None:
        collection = GeometryCollection(2, has_m=True)
        collection[0] = Point(VertexArray.copy(arena, [1, 2, 9], 1, has_m=True))
        assert write_wkt(collection) == (
            "GEOMETRYCOLLECTION M (POINT M (1 2 9), GEOMETRYCOLLECTION M EMPTY)"
        )


class TestIdempotence:
    """Writing then re-reading yields an equal tree."""

    @pytest.mark.parametrize(
        "wkt",
        [
            "POINT(0.1 -2.5e-8)",
            "LINESTRING M (0 0 1, 10 10 2)",
            "POLYGON Z ((0 0 0, 4 0 1, 4 4 2, 0 0 0), (1 1 0, 2 1 0, 1 1 0))",
            "MULTIPOINT ZM ((1 2 3 4), EMPTY)",
            "MULTIPOLYGON(((0 0,4 0,4 4,0 4,0 0),(1 1,2 1,2 2,1 2,1 1)))",
            "GEOMETRYCOLLECTION(POINT(1 2), GEOMETRYCOLLECTION(LINESTRING(0 0, 1 1)),"
            " POLYGON EMPTY)",
            "POINT(nan inf)",
        ],
    )
    def test_round_trip(self, arena: Arena, wkt: str) -> None:
        geom = read_wkt(wkt, arena)
        text = write_wkt(geom)
        reparsed = read_wkt(text, arena)
        assert reparsed == geom
        assert write_wkt(reparsed) == text

    def test_negative_zero_keeps_its_sign(self, arena: Arena) -> None:
        point = Point(VertexArray.copy(arena, [-0.0, 0.0], 1))
        text = write_wkt(point)
        assert text == "POINT (-0 0)"
        x, y = read_wkt(text, arena).coords  # type: ignore[union-attr,misc]
        assert math.copysign(1.0, x) == -1.0
        assert math.copysign(1.0, y) == 1.0
