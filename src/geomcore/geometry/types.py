"""Shared geometry enums and dimension helpers."""

from __future__ import annotations

from enum import IntEnum

# Deepest tree any reader, writer or constructor accepts, counting every
# level from the root geometry down to its deepest leaf
MAX_DEPTH = 128


class GeometryType(IntEnum):
    """The closed set of OGC simple-feature kinds.

    Values double as the kind tag of the geometry_t binary format.
    """

    POINT = 0
    LINESTRING = 1
    POLYGON = 2
    MULTIPOINT = 3
    MULTILINESTRING = 4
    MULTIPOLYGON = 5
    GEOMETRYCOLLECTION = 6

    @property
    def keyword(self) -> str:
        """WKT keyword for this kind (e.g. ``MULTIPOLYGON``)."""
        return self.name

    @property
    def is_multi(self) -> bool:
        return self in (
            GeometryType.MULTIPOINT,
            GeometryType.MULTILINESTRING,
            GeometryType.MULTIPOLYGON,
        )

    @property
    def is_collection(self) -> bool:
        """True for kinds whose children are geometries."""
        return self.is_multi or self is GeometryType.GEOMETRYCOLLECTION


def dimension(has_z: bool, has_m: bool) -> int:
    """Number of doubles per vertex for the given flags."""
    return 2 + int(has_z) + int(has_m)


def dimension_name(has_z: bool, has_m: bool) -> str:
    """Return ``XY``, ``XYZ``, ``XYM`` or ``XYZM``."""
    return "XY" + ("Z" if has_z else "") + ("M" if has_m else "")


def zm_suffix(has_z: bool, has_m: bool) -> str:
    """Return the WKT dimension marker (``""``, ``Z``, ``M`` or ``ZM``)."""
    return ("Z" if has_z else "") + ("M" if has_m else "")
