"""Tests for geomcore.exceptions module."""

from __future__ import annotations

from geomcore.exceptions import (
    ArenaExhaustedError,
    DimensionMismatchError,
    GeometryDecodeError,
    GeometryError,
    GeometryTypeError,
    WKTParseError,
)


class TestWKTParseError:
    def test_message_carries_position_and_context(self) -> None:
        error = WKTParseError(
            "WKT Parser: Expected double", position=8, context="POINT(1 x"
        )
        assert str(error) == (
            "WKT Parser: Expected double at position 8 near: 'POINT(1 x'|<---"
        )
        assert error.message == "WKT Parser: Expected double"
        assert error.position == 8
        assert error.context == "POINT(1 x"

    def test_is_value_error(self) -> None:
        error = WKTParseError("bad", position=0, context="")
        assert isinstance(error, GeometryError)
        assert isinstance(error, ValueError)


class TestGeometryDecodeError:
    def test_message_carries_offset(self) -> None:
        error = GeometryDecodeError("Truncated", offset=12)
        assert str(error) == "Truncated (offset=12)"
        assert error.offset == 12


class TestHierarchy:
    def test_dimension_mismatch_is_geometry_error(self) -> None:
        assert issubclass(DimensionMismatchError, GeometryError)
        assert issubclass(DimensionMismatchError, ValueError)

    def test_type_error_is_geometry_error(self) -> None:
        assert issubclass(GeometryTypeError, GeometryError)
        assert issubclass(GeometryTypeError, TypeError)

    def test_arena_exhausted_is_not_geometry_error(self) -> None:
        """Exhaustion must escape per-row GeometryError handlers."""
        error = ArenaExhaustedError(64, 960, 1000)
        assert isinstance(error, MemoryError)
        assert not isinstance(error, GeometryError)
        assert "requested 64 bytes" in str(error)
        assert "960 of 1000" in str(error)
