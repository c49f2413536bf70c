"""Unit tests for the batch execution boundary."""

from __future__ import annotations

import json

import pytest

from geomcore.codec import deserialize, read_wkb
from geomcore.core import BatchContext, RowError
from geomcore.exceptions import ArenaExhaustedError
from geomcore.memory import Arena
from geomcore.utils.logging import configure_logging, get_logger
from geomcore.wkt import read_wkt


class TestRowIsolation:
    """A bad row never aborts its siblings."""

    def test_failed_row_yields_none(self) -> None:
        context = BatchContext()
        result = context.wkt_to_blob_batch(["POINT(1 2)", "POINT(1 x)", "POINT(3 4)"])

        assert len(result) == 3
        assert result.failed_rows == [1]
        assert not result.ok
        assert result.values[1] is None
        assert result.values[0] is not None
        assert result.values[2] is not None
        error = result.errors[0]
        assert isinstance(error, RowError)
        assert error.error_type == "WKTParseError"
        assert "at position 8" in error.message

    def test_deeply_nested_row_is_isolated(self) -> None:
        deep = "GEOMETRYCOLLECTION(" * 2000 + "POINT(1 2)" + ")" * 2000
        result = BatchContext().wkt_to_blob_batch(["POINT(1 2)", deep, "POINT(3 4)"])

        assert result.failed_rows == [1]
        assert result.errors[0].error_type == "WKTParseError"
        assert "nesting exceeds" in result.errors[0].message
        assert result.values[0] is not None
        assert result.values[2] is not None

    def test_geometry_collection_rows(self) -> None:
        result = BatchContext().wkt_to_blob_batch(
            ["GEOMETRYCOLLECTION(POINT Z(1 2 3), POINT Z(4 5 6))"]
        )
        assert result.ok
        blob = result.values[0]
        assert blob is not None
        with Arena() as arena:
            assert deserialize(blob, arena) == read_wkt(
                "GEOMETRYCOLLECTION Z (POINT Z (1 2 3), POINT Z (4 5 6))", arena
            )

    def test_null_rows_pass_through(self) -> None:
        result = BatchContext().wkt_to_blob_batch([None, "POINT EMPTY"])
        assert result.values[0] is None
        assert result.ok

    def test_all_rows_good(self) -> None:
        result = BatchContext().wkt_to_wkb_batch(["POINT(1 2)", "LINESTRING EMPTY"])
        assert result.ok
        assert result.failed_rows == []

    def test_custom_function_errors_are_isolated(self) -> None:
        context = BatchContext()
        result = context.execute(
            [b"\x00", b"\x01\x01\x00\x00\x00" + bytes(16)],
            lambda arena, data: read_wkb(data, arena),
        )
        assert result.failed_rows == [0]
        assert result.errors[0].error_type == "GeometryDecodeError"
        assert result.values[1] is not None

    def test_unexpected_errors_propagate(self) -> None:
        def explode(arena: Arena, value: str) -> str:
            raise RuntimeError(value)

        with pytest.raises(RuntimeError, match="boom"):
            BatchContext().execute(["boom"], explode)

    def test_arena_exhaustion_is_fatal(self) -> None:
        context = BatchContext(Arena(block_size=64, max_bytes=16))
        with pytest.raises(ArenaExhaustedError):
            context.wkt_to_blob_batch(["LINESTRING(0 0, 1 1, 2 2)"])


class TestConversions:
    def test_wkt_to_blob_to_wkt(self) -> None:
        context = BatchContext()
        blobs = context.wkt_to_blob_batch(
            ["POINT Z (1 2 3)", "MULTIPOINT((1 1), (2 2))", "POLYGON EMPTY"]
        )
        texts = context.blob_to_wkt_batch(blobs.values)
        assert texts.values == [
            "POINT Z (1 2 3)",
            "MULTIPOINT ((1 1), (2 2))",
            "POLYGON EMPTY",
        ]

    def test_blob_decode_errors_reported(self) -> None:
        result = BatchContext().blob_to_wkt_batch([b"garbage"])
        assert result.failed_rows == [0]
        assert result.errors[0].error_type == "GeometryDecodeError"

    def test_wkb_output_decodes(self) -> None:
        context = BatchContext()
        result = context.wkt_to_wkb_batch(["LINESTRING(0 0, 1 1)"])
        wkb = result.values[0]
        assert wkb is not None
        with Arena() as arena:
            assert read_wkb(wkb, arena) == read_wkt("LINESTRING(0 0, 1 1)", arena)

    def test_parse_batch_trees_live_until_next_batch(self) -> None:
        context = BatchContext()
        first = context.parse_wkt_batch(["POINT(1 2)"])
        generation = context.arena.generation
        point = first.values[0]
        assert point is not None
        assert point.coords == (1.0, 2.0)  # type: ignore[union-attr]

        context.parse_wkt_batch(["POINT(3 4)"])
        assert context.arena.generation == generation + 1

    def test_arena_reset_per_batch(self) -> None:
        context = BatchContext(Arena(block_size=256, max_bytes=256))
        rows = ["LINESTRING(0 0, 1 1, 2 2, 3 3)"] * 3
        for _ in range(10):
            assert context.wkt_to_blob_batch(rows).ok

    def test_reset_and_get_returns_context(self) -> None:
        context = BatchContext()
        assert context.reset_and_get() is context

    def test_blob_values_decode(self) -> None:
        context = BatchContext()
        blob = context.wkt_to_blob_batch(["POINT(5 6)"]).values[0]
        assert blob is not None
        with Arena() as arena:
            assert deserialize(blob, arena).coords == (5.0, 6.0)  # type: ignore[union-attr]


class TestLogging:
    def test_failed_row_is_logged_with_batch_id(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        configure_logging(level="WARNING", log_format="json")
        result = BatchContext().execute(
            ["POINT(1 2)", "POINT(1 2)", "POINT("],
            lambda arena, wkt: read_wkt(wkt, arena),
            batch_id="batch-abc",
        )
        assert result.batch_id == "batch-abc"
        err = capsys.readouterr().err
        assert "Row conversion failed" in err
        assert "batch-abc" in err

    def test_correlation_context_cleared_after_batch(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        configure_logging(level="INFO", log_format="json")
        BatchContext().wkt_to_blob_batch(["POINT(", "POINT(1 2)"])
        get_logger("test.after_batch").info("after")

        lines = [line for line in capsys.readouterr().err.splitlines() if line.strip()]
        payload = json.loads(lines[-1])
        assert payload["event"] == "after"
        assert "batch_id" not in payload
        assert "row" not in payload

    def test_generated_batch_ids_are_unique(self) -> None:
        context = BatchContext()
        first = context.wkt_to_blob_batch([])
        second = context.wkt_to_blob_batch([])
        assert first.batch_id != second.batch_id
