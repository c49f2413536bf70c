"""Recursive-descent reader for well-known text (WKT).

Grammar (keywords case-insensitive, whitespace-flexible)::

    WKT        := ('SRID' '='? integer ';')? Geometry
    Geometry   := Keyword ZM? ('EMPTY' | Body)
    Keyword    := POINT | LINESTRING | POLYGON | MULTIPOINT
                | MULTILINESTRING | MULTIPOLYGON | GEOMETRYCOLLECTION
    ZM         := 'Z' | 'ZM' | 'M'

The Z/M flags of the first marked shape fix the dimensionality of the
whole input; any later shape with different flags is a parse error. An
unmarked GEOMETRYCOLLECTION takes its flags from its members.

After every consumed token the cursor skips trailing whitespace, so it
always rests on the next significant character. The grammar is pure
ASCII, so every consumed character is one UTF-8 byte. Failures raise
``WKTParseError`` with the UTF-8 byte offset of the cursor and up to
``WKT_ERROR_CONTEXT`` characters of left context. Input nesting deeper
than ``MAX_DEPTH`` levels is a parse error.
"""

from __future__ import annotations

import re
from typing import NoReturn, assert_never

from geomcore.config import settings
from geomcore.exceptions import WKTParseError
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
from geomcore.geometry.types import MAX_DEPTH, GeometryType
from geomcore.geometry.vertex_array import VertexArray
from geomcore.memory.arena import Arena

_WHITESPACE = frozenset(" \t\n\v\f\r")

_NUMBER = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE | re.ASCII,
)
_INTEGER = re.compile(r"[+-]?\d+", re.ASCII)
_WORD = re.compile(r"[A-Za-z0-9]*")

# Order matters only for readability: no keyword is a prefix of another
_KEYWORDS: tuple[GeometryType, ...] = (
    GeometryType.POINT,
    GeometryType.LINESTRING,
    GeometryType.POLYGON,
    GeometryType.MULTIPOINT,
    GeometryType.MULTILINESTRING,
    GeometryType.MULTIPOLYGON,
    GeometryType.GEOMETRYCOLLECTION,
)


class WKTReader:
    """Parser that builds arena-allocated geometry trees from WKT.

    A reader may be reused for many inputs but must not be shared between
    threads: the cursor and dimension flags are per-parse state that is
    reset at the start of every call.

    Example:
        >>> reader = WKTReader(Arena())
        >>> reader.parse("POINT Z (1 2 3)").coords
        (1.0, 2.0, 3.0)
    """

    def __init__(self, arena: Arena, *, context_chars: int | None = None) -> None:
        """Initialize the reader.

        Args:
            arena: Arena owning every vertex array the reader creates.
            context_chars: Characters of left context in error messages.
                Defaults to settings.WKT_ERROR_CONTEXT.
        """
        self.arena = arena
        self.context_chars = (
            settings.WKT_ERROR_CONTEXT if context_chars is None else context_chars
        )
        self._text = ""
        self._cursor = 0
        self._end = 0
        self._has_z = False
        self._has_m = False
        self._zm_set = False
        self._level = 0

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def parse(self, wkt: str | bytes) -> Geometry:
        """Parse WKT (an SRID prefix is accepted and discarded)."""
        _, geom = self.parse_ewkt(wkt)
        return geom

    def parse_ewkt(self, wkt: str | bytes) -> tuple[int | None, Geometry]:
        """Parse WKT or extended WKT.

        Args:
            wkt: Text, or UTF-8 encoded bytes.

        Returns:
            ``(srid, geometry)`` where srid is None without an SRID prefix.

        Raises:
            WKTParseError: On any malformed input.
        """
        self._reset(self._decode(wkt))
        self._skip_whitespace()
        srid = self._parse_srid()
        geom = self._parse_geometry()
        if self._cursor < self._end:
            self._fail("WKT Parser: Expected end of input")
        return srid, geom

    # ------------------------------------------------------------------
    # Cursor primitives
    # ------------------------------------------------------------------

    def _decode(self, wkt: str | bytes) -> str:
        if isinstance(wkt, str):
            return wkt
        try:
            return bytes(wkt).decode("utf-8")
        except UnicodeDecodeError as e:
            raise WKTParseError(
                "WKT Parser: Input is not valid UTF-8",
                position=e.start,
                context="",
            ) from e

    def _reset(self, text: str) -> None:
        self._text = text
        self._cursor = 0
        self._end = len(text)
        self._has_z = False
        self._has_m = False
        self._zm_set = False
        self._level = 0

    def _skip_whitespace(self) -> None:
        while self._cursor < self._end and self._text[self._cursor] in _WHITESPACE:
            self._cursor += 1

    def _error_context(self) -> str:
        start = max(self._cursor - self.context_chars, 0)
        end = min(self._cursor + 1, self._end)
        context = self._text[start:end]
        if start != 0:
            context = "..." + context
        return context

    def _byte_offset(self, cursor: int) -> int:
        return len(self._text[:cursor].encode("utf-8", "surrogatepass"))

    def _fail(self, message: str) -> NoReturn:
        raise WKTParseError(
            message,
            position=self._byte_offset(self._cursor),
            context=self._error_context(),
        )

    def _match(self, char: str) -> bool:
        if self._cursor < self._end and self._text[self._cursor] == char:
            self._cursor += 1
            self._skip_whitespace()
            return True
        return False

    def _match_ci(self, word: str) -> bool:
        end = self._cursor + len(word)
        candidate = self._text[self._cursor : end]
        if not candidate.isascii() or candidate.upper() != word:
            return False
        self._cursor = end
        self._skip_whitespace()
        return True

    def _expect(self, char: str) -> None:
        if not self._match(char):
            self._fail(f"WKT Parser: Expected character '{char}'")

    def _check_nesting(self) -> None:
        # Children of the current shape sit one level below it
        if self._level + 1 >= MAX_DEPTH:
            self._fail(f"WKT Parser: Geometry nesting exceeds {MAX_DEPTH} levels")

    def _parse_double(self) -> float:
        match = _NUMBER.match(self._text, self._cursor)
        if match is None:
            self._fail("WKT Parser: Expected double")
        self._cursor = match.end()
        self._skip_whitespace()
        return float(match.group())

    def _parse_word(self) -> str:
        match = _WORD.match(self._text, self._cursor)
        assert match is not None  # _WORD matches the empty string
        self._cursor = match.end()
        return match.group()

    # ------------------------------------------------------------------
    # Dimensions
    # ------------------------------------------------------------------

    def _parse_zm(self) -> tuple[bool, bool] | None:
        if self._match_ci("Z"):
            return True, self._match_ci("M")
        if self._match_ci("M"):
            return False, True
        return None

    def _check_zm(self, marker: tuple[bool, bool] | None, kind: GeometryType) -> None:
        if marker is None and kind is GeometryType.GEOMETRYCOLLECTION:
            # Unmarked collections inherit from their members
            return
        has_z, has_m = marker or (False, False)
        if self._zm_set:
            if self._has_z != has_z or self._has_m != has_m:
                self._fail(
                    "WKT Parser: GeometryCollection with mixed Z and M types "
                    "are not supported, mismatch"
                )
        else:
            self._set_zm(has_z, has_m)

    def _set_zm(self, has_z: bool, has_m: bool) -> None:
        self._has_z = has_z
        self._has_m = has_m
        self._zm_set = True

    # ------------------------------------------------------------------
    # Grammar
    # ------------------------------------------------------------------

    def _parse_srid(self) -> int | None:
        if not self._match_ci("SRID"):
            return None
        self._match("=")
        match = _INTEGER.match(self._text, self._cursor)
        if match is None:
            self._fail("WKT Parser: Expected SRID")
        self._cursor = match.end()
        self._skip_whitespace()
        self._expect(";")
        return int(match.group())

    def _parse_geometry(self) -> Geometry:
        for kind in _KEYWORDS:
            if self._match_ci(kind.keyword):
                self._check_zm(self._parse_zm(), kind)
                return self._parse_body(kind)
        context = self._error_context()
        position = self._byte_offset(self._cursor)
        word = self._parse_word()
        raise WKTParseError(
            f"WKT Parser: Unknown geometry type '{word}'",
            position=position,
            context=context,
        )

    def _parse_body(self, kind: GeometryType) -> Geometry:
        match kind:
            case GeometryType.POINT:
                return self._parse_point()
            case GeometryType.LINESTRING:
                return self._parse_linestring()
            case GeometryType.POLYGON:
                return self._parse_polygon()
            case GeometryType.MULTIPOINT:
                return self._parse_multipoint()
            case GeometryType.MULTILINESTRING:
                return self._parse_multilinestring()
            case GeometryType.MULTIPOLYGON:
                return self._parse_multipolygon()
            case GeometryType.GEOMETRYCOLLECTION:
                return self._parse_geometry_collection()
            case _:
                assert_never(kind)

    def _parse_vertex(self, coords: list[float]) -> None:
        coords.append(self._parse_double())
        coords.append(self._parse_double())
        if self._has_z:
            coords.append(self._parse_double())
        if self._has_m:
            coords.append(self._parse_double())

    def _make_vertices(self, coords: list[float], count: int) -> VertexArray:
        return VertexArray.copy(self.arena, coords, count, self._has_z, self._has_m)

    def _parse_vertices(self) -> VertexArray:
        if self._match_ci("EMPTY"):
            return VertexArray.empty(self._has_z, self._has_m)
        self._expect("(")
        coords: list[float] = []
        count = 1
        self._parse_vertex(coords)
        while self._match(","):
            self._parse_vertex(coords)
            count += 1
        self._expect(")")
        return self._make_vertices(coords, count)

    def _parse_point(self) -> Point:
        if self._match_ci("EMPTY"):
            return Point.empty(self._has_z, self._has_m)
        self._expect("(")
        coords: list[float] = []
        self._parse_vertex(coords)
        self._expect(")")
        return Point(self._make_vertices(coords, 1))

    def _parse_linestring(self) -> LineString:
        return LineString(self._parse_vertices())

    def _parse_polygon(self) -> Polygon:
        if self._match_ci("EMPTY"):
            return Polygon.empty(self._has_z, self._has_m)
        self._expect("(")
        rings = [self._parse_vertices()]
        while self._match(","):
            rings.append(self._parse_vertices())
        self._expect(")")
        return Polygon.from_rings(rings, self._has_z, self._has_m)

    def _parse_multipoint_member(self) -> Point:
        # Parentheses around each member are optional: (1 2, 3 4) == ((1 2), (3 4))
        if self._match_ci("EMPTY"):
            return Point.empty(self._has_z, self._has_m)
        parenthesized = self._match("(")
        coords: list[float] = []
        self._parse_vertex(coords)
        if parenthesized:
            self._expect(")")
        return Point(self._make_vertices(coords, 1))

    def _parse_multipoint(self) -> MultiPoint:
        if self._match_ci("EMPTY"):
            return MultiPoint.empty(self._has_z, self._has_m)
        self._expect("(")
        self._check_nesting()
        points = [self._parse_multipoint_member()]
        while self._match(","):
            points.append(self._parse_multipoint_member())
        self._expect(")")
        return MultiPoint.from_children(points, self._has_z, self._has_m)

    def _parse_multilinestring(self) -> MultiLineString:
        if self._match_ci("EMPTY"):
            return MultiLineString.empty(self._has_z, self._has_m)
        self._expect("(")
        self._check_nesting()
        lines = [self._parse_linestring()]
        while self._match(","):
            lines.append(self._parse_linestring())
        self._expect(")")
        return MultiLineString.from_children(lines, self._has_z, self._has_m)

    def _parse_multipolygon(self) -> MultiPolygon:
        if self._match_ci("EMPTY"):
            return MultiPolygon.empty(self._has_z, self._has_m)
        self._expect("(")
        self._check_nesting()
        polygons = [self._parse_polygon()]
        while self._match(","):
            polygons.append(self._parse_polygon())
        self._expect(")")
        return MultiPolygon.from_children(polygons, self._has_z, self._has_m)

    def _parse_geometry_collection(self) -> GeometryCollection:
        if self._match_ci("EMPTY"):
            if not self._zm_set:
                self._set_zm(False, False)
            return GeometryCollection.empty(self._has_z, self._has_m)
        self._expect("(")
        self._check_nesting()
        self._level += 1
        geometries = [self._parse_geometry()]
        while self._match(","):
            geometries.append(self._parse_geometry())
        self._level -= 1
        self._expect(")")
        return GeometryCollection.from_children(
            geometries, self._has_z, self._has_m
        )


def read_wkt(wkt: str | bytes, arena: Arena) -> Geometry:
    """Parse WKT into a geometry owned by ``arena``, discarding any SRID."""
    return WKTReader(arena).parse(wkt)


def read_ewkt(wkt: str | bytes, arena: Arena) -> tuple[int | None, Geometry]:
    """Parse (extended) WKT, returning ``(srid, geometry)``."""
    return WKTReader(arena).parse_ewkt(wkt)
