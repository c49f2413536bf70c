"""Batch execution boundary.

A ``BatchContext`` owns one arena and converts a sequence of rows with it,
resetting the arena before every batch. A malformed row is recorded as a
``RowError`` and yields ``None``; it never aborts its sibling rows. Arena
exhaustion is not a row error and propagates.

Trees returned by ``parse_wkt_batch`` borrow from the context's arena and
are only valid until the next batch starts.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Generic, Self, TypeVar

from geomcore.codec.blob import deserialize, serialize
from geomcore.codec.wkb import write_wkb
from geomcore.exceptions import GeometryError
from geomcore.geometry.shapes import Geometry
from geomcore.memory.arena import Arena
from geomcore.utils.logging import (
    clear_correlation_context,
    get_logger,
    set_correlation_context,
)
from geomcore.wkt.reader import WKTReader
from geomcore.wkt.writer import write_wkt

logger = get_logger(__name__)

InT = TypeVar("InT")
OutT = TypeVar("OutT")


@dataclass(frozen=True)
class RowError:
    """A row that failed to convert.

    Attributes:
        row: Zero-based index of the row in its batch.
        message: The error message, including positional context.
        error_type: Name of the exception class raised for the row.
    """

    row: int
    message: str
    error_type: str


@dataclass
class BatchResult(Generic[OutT]):
    """Per-row outputs of one batch; failed and NULL rows are None."""

    batch_id: str
    values: list[OutT | None]
    errors: list[RowError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def failed_rows(self) -> list[int]:
        return [error.row for error in self.errors]

    def __len__(self) -> int:
        return len(self.values)


class BatchContext:
    """Per-thread state for converting batches of geometries.

    Example:
        >>> context = BatchContext()
        >>> result = context.wkt_to_blob_batch(["POINT(1 2)", "POINT(1 x)"])
        >>> result.failed_rows
        [1]
    """

    def __init__(self, arena: Arena | None = None) -> None:
        self.arena = arena or Arena()
        self.reader = WKTReader(self.arena)

    def reset_and_get(self) -> Self:
        """Reset the arena, invalidating trees from the previous batch."""
        self.arena.reset()
        return self

    def execute(
        self,
        values: Iterable[InT | None],
        fn: Callable[[Arena, InT], OutT],
        *,
        batch_id: str | None = None,
    ) -> BatchResult[OutT]:
        """Apply ``fn`` to every non-None row of a fresh batch.

        Args:
            values: Input rows; None rows pass through as None.
            fn: Conversion taking the batch arena and one row.
            batch_id: Correlation id for logs. Generated when omitted.

        Returns:
            BatchResult with one output per input row.
        """
        self.reset_and_get()
        result: BatchResult[OutT] = BatchResult(
            batch_id=batch_id or uuid.uuid4().hex[:12], values=[]
        )
        set_correlation_context(batch_id=result.batch_id)
        try:
            for row, value in enumerate(values):
                if value is None:
                    result.values.append(None)
                    continue
                set_correlation_context(row=row)
                try:
                    result.values.append(fn(self.arena, value))
                except GeometryError as e:
                    logger.warning(
                        "Row conversion failed",
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    result.errors.append(RowError(row, str(e), type(e).__name__))
                    result.values.append(None)
        finally:
            clear_correlation_context()

        logger.debug(
            "Batch complete",
            batch_id=result.batch_id,
            rows=len(result.values),
            failed=len(result.errors),
            arena_bytes=self.arena.bytes_allocated,
        )
        return result

    def parse_wkt_batch(self, values: Iterable[str | None]) -> BatchResult[Geometry]:
        """Parse WKT rows into trees owned by this context's arena."""
        return self.execute(values, lambda _, wkt: self.reader.parse(wkt))

    def wkt_to_blob_batch(self, values: Iterable[str | None]) -> BatchResult[bytes]:
        """Parse WKT rows and serialize each tree to geometry_t."""
        return self.execute(values, lambda _, wkt: serialize(self.reader.parse(wkt)))

    def wkt_to_wkb_batch(self, values: Iterable[str | None]) -> BatchResult[bytes]:
        """Parse WKT rows and encode each tree as ISO WKB."""
        return self.execute(values, lambda _, wkt: write_wkb(self.reader.parse(wkt)))

    def blob_to_wkt_batch(self, values: Iterable[bytes | None]) -> BatchResult[str]:
        """Decode geometry_t rows and write each tree as WKT."""
        return self.execute(
            values, lambda arena, blob: write_wkt(deserialize(blob, arena))
        )
