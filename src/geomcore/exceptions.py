"""Custom exceptions for geometry operations.

Malformed input (text or binary) is always reported with positional
context. Arena exhaustion is fatal and deliberately sits outside the
``GeometryError`` hierarchy so per-row error handling never swallows it.
"""


class GeometryError(Exception):
    """Base exception for all malformed-geometry errors."""

    def __init__(self, message: str) -> None:
        """Initialize geometry error.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        return self.message


class WKTParseError(GeometryError, ValueError):
    """Raised when a well-known-text string cannot be parsed.

    The message carries the byte offset and a bounded left context of the
    input, e.g. ``WKT Parser: Expected double at position 8 near: 'POINT(1 x'|<---``.

    Attributes:
        position: Offset of the cursor when the failure was detected.
        context: Input text to the left of (and including) the cursor.
    """

    def __init__(self, message: str, *, position: int, context: str) -> None:
        self.position = position
        self.context = context
        super().__init__(message)

    def _format_message(self) -> str:
        return (
            f"{self.message} at position {self.position} "
            f"near: '{self.context}'|<---"
        )


class GeometryDecodeError(GeometryError, ValueError):
    """Raised when a binary geometry (geometry_t or WKB) cannot be decoded.

    This error is raised when:
    - The buffer is truncated
    - A type tag is unknown or inconsistent with its container
    - Counts exceed the remaining buffer
    - Bytes remain after the geometry
    """

    def __init__(self, message: str, *, offset: int) -> None:
        self.offset = offset
        super().__init__(message)

    def _format_message(self) -> str:
        return f"{self.message} (offset={self.offset})"


class DimensionMismatchError(GeometryError, ValueError):
    """Raised when geometries with different Z/M flags are combined."""

    pass


class GeometryTypeError(GeometryError, TypeError):
    """Raised when a child of the wrong kind is placed into a multi geometry."""

    pass


class GeometryNestingError(GeometryError, ValueError):
    """Raised when a tree would nest deeper than ``MAX_DEPTH`` levels."""

    pass


class ArenaExhaustedError(MemoryError):
    """Raised when an arena cannot satisfy an allocation.

    This is a resource-exhaustion failure, not a malformed-input one:
    callers are expected to size batches so that it never happens.
    """

    def __init__(self, requested: int, allocated: int, limit: int) -> None:
        self.requested = requested
        self.allocated = allocated
        self.limit = limit
        super().__init__(
            f"Arena exhausted: requested {requested} bytes with "
            f"{allocated} of {limit} bytes already allocated"
        )
