"""The geometry tree: a tagged variant over the seven OGC shape kinds.

Trees are built bottom-up. Composites are created with a fixed child
count and shared Z/M flags, start out filled with empty children of the
matching kind, and are completed by indexed assignment. Assigning a child
whose flags differ from its parent raises ``DimensionMismatchError``, so
every tree has uniform dimensionality from the moment it exists. Assigning
a child that would make the tree deeper than ``MAX_DEPTH`` levels raises
``GeometryNestingError``.

Code that walks a tree dispatches with ``match`` over the concrete
classes and closes the match with ``assert_never``; see
``geomcore.geometry.traversal``.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import ClassVar, Generic, Self, TypeAlias, TypeVar

from geomcore.config import settings
from geomcore.exceptions import (
    DimensionMismatchError,
    GeometryNestingError,
    GeometryTypeError,
)
from geomcore.geometry.types import MAX_DEPTH, GeometryType, dimension_name
from geomcore.geometry.vertex_array import Vertex, VertexArray


def _check_dimensions(
    owner: str, has_z: bool, has_m: bool, child_z: bool, child_m: bool
) -> None:
    if has_z != child_z or has_m != child_m:
        raise DimensionMismatchError(
            f"{owner} is {dimension_name(has_z, has_m)} but child is "
            f"{dimension_name(child_z, child_m)}"
        )


def _check_slot(index: int, count: int) -> None:
    if settings.DEBUG_CHECKS and not 0 <= index < count:
        raise IndexError(f"Index {index} out of range [0, {count - 1}]")


class Point:
    """A single position, or an empty point."""

    __slots__ = ("vertices",)

    type: ClassVar[GeometryType] = GeometryType.POINT

    def __init__(self, vertices: VertexArray) -> None:
        if vertices.count > 1:
            raise ValueError(f"Point holds at most one vertex, got {vertices.count}")
        self.vertices = vertices

    @classmethod
    def empty(cls, has_z: bool = False, has_m: bool = False) -> Self:
        return cls(VertexArray.empty(has_z, has_m))

    @property
    def has_z(self) -> bool:
        return self.vertices.has_z

    @property
    def has_m(self) -> bool:
        return self.vertices.has_m

    @property
    def is_empty(self) -> bool:
        return self.vertices.is_empty

    @property
    def coords(self) -> Vertex | None:
        """The point's vertex, or None when empty."""
        return None if self.vertices.is_empty else self.vertices.get(0)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point):
            return NotImplemented
        return self.vertices == other.vertices

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Point({dimension_name(self.has_z, self.has_m)}, {self.coords})"


class LineString:
    """An ordered sequence of vertices."""

    __slots__ = ("vertices",)

    type: ClassVar[GeometryType] = GeometryType.LINESTRING

    def __init__(self, vertices: VertexArray) -> None:
        self.vertices = vertices

    @classmethod
    def empty(cls, has_z: bool = False, has_m: bool = False) -> Self:
        return cls(VertexArray.empty(has_z, has_m))

    @property
    def has_z(self) -> bool:
        return self.vertices.has_z

    @property
    def has_m(self) -> bool:
        return self.vertices.has_m

    @property
    def is_empty(self) -> bool:
        return self.vertices.is_empty

    @property
    def count(self) -> int:
        return self.vertices.count

    def get(self, index: int) -> Vertex:
        return self.vertices.get(index)

    def __len__(self) -> int:
        return self.vertices.count

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LineString):
            return NotImplemented
        return self.vertices == other.vertices

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        dims = dimension_name(self.has_z, self.has_m)
        return f"LineString({dims}, count={self.count})"


class Polygon:
    """A shell ring followed by zero or more hole rings.

    Rings are vertex arrays; a non-empty ring is expected to be closed.
    """

    __slots__ = ("_rings", "_has_z", "_has_m")

    type: ClassVar[GeometryType] = GeometryType.POLYGON

    def __init__(
        self, ring_count: int = 0, has_z: bool = False, has_m: bool = False
    ) -> None:
        if ring_count < 0:
            raise ValueError(f"Ring count must be non-negative, got {ring_count}")
        self._has_z = has_z
        self._has_m = has_m
        self._rings = [VertexArray.empty(has_z, has_m)] * ring_count

    @classmethod
    def empty(cls, has_z: bool = False, has_m: bool = False) -> Self:
        return cls(0, has_z, has_m)

    @classmethod
    def from_rings(
        cls, rings: Sequence[VertexArray], has_z: bool = False, has_m: bool = False
    ) -> Self:
        polygon = cls(len(rings), has_z, has_m)
        for i, ring in enumerate(rings):
            polygon[i] = ring
        return polygon

    @property
    def has_z(self) -> bool:
        return self._has_z

    @property
    def has_m(self) -> bool:
        return self._has_m

    @property
    def ring_count(self) -> int:
        return len(self._rings)

    @property
    def is_empty(self) -> bool:
        return all(ring.is_empty for ring in self._rings)

    @property
    def shell(self) -> VertexArray:
        """The exterior ring (ring 0)."""
        return self[0]

    def __getitem__(self, index: int) -> VertexArray:
        _check_slot(index, len(self._rings))
        return self._rings[index]

    def __setitem__(self, index: int, ring: VertexArray) -> None:
        if not isinstance(ring, VertexArray):
            raise GeometryTypeError(
                f"Polygon rings must be VertexArray, got {type(ring).__name__}"
            )
        _check_dimensions("Polygon", self._has_z, self._has_m, ring.has_z, ring.has_m)
        _check_slot(index, len(self._rings))
        self._rings[index] = ring

    def __len__(self) -> int:
        return len(self._rings)

    def __iter__(self) -> Iterator[VertexArray]:
        return iter(self._rings)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Polygon):
            return NotImplemented
        return (
            self._has_z == other._has_z
            and self._has_m == other._has_m
            and self._rings == other._rings
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        dims = dimension_name(self._has_z, self._has_m)
        return f"Polygon({dims}, rings={self.ring_count})"


ChildT = TypeVar("ChildT")


class _Collection(Generic[ChildT]):
    """Fixed-size child storage shared by the multi kinds and collections."""

    __slots__ = ("_items", "_has_z", "_has_m", "_depth")

    type: ClassVar[GeometryType]
    _child_types: ClassVar[tuple[type, ...]]

    def __init__(
        self, count: int = 0, has_z: bool = False, has_m: bool = False
    ) -> None:
        if count < 0:
            raise ValueError(f"Child count must be non-negative, got {count}")
        self._has_z = has_z
        self._has_m = has_m
        self._items: list[ChildT] = (
            [self._empty_child(has_z, has_m)] * count if count else []
        )
        # Placeholder children are leaves or empty collections, one level deep
        self._depth = 2 if count else 1

    @classmethod
    def _empty_child(cls, has_z: bool, has_m: bool) -> ChildT:
        raise NotImplementedError

    @classmethod
    def empty(cls, has_z: bool = False, has_m: bool = False) -> Self:
        return cls(0, has_z, has_m)

    @classmethod
    def from_children(
        cls, children: Sequence[ChildT], has_z: bool = False, has_m: bool = False
    ) -> Self:
        collection = cls(len(children), has_z, has_m)
        for i, child in enumerate(children):
            collection[i] = child
        return collection

    @property
    def has_z(self) -> bool:
        return self._has_z

    @property
    def has_m(self) -> bool:
        return self._has_m

    @property
    def is_empty(self) -> bool:
        return all(item.is_empty for item in self._items)  # type: ignore[attr-defined]

    def __getitem__(self, index: int) -> ChildT:
        _check_slot(index, len(self._items))
        return self._items[index]

    def __setitem__(self, index: int, child: ChildT) -> None:
        owner = type(self).__name__
        if not isinstance(child, self._child_types):
            raise GeometryTypeError(f"{owner} cannot hold {type(child).__name__}")
        _check_dimensions(
            owner,
            self._has_z,
            self._has_m,
            child.has_z,  # type: ignore[attr-defined]
            child.has_m,  # type: ignore[attr-defined]
        )
        _check_slot(index, len(self._items))
        depth = 1 + _nesting_depth(child)
        if depth > MAX_DEPTH:
            raise GeometryNestingError(
                f"{owner} would nest {depth} levels deep, limit is {MAX_DEPTH}"
            )
        self._items[index] = child
        self._depth = max(self._depth, depth)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[ChildT]:
        return iter(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _Collection) or type(other) is not type(self):
            return NotImplemented
        return (
            self._has_z == other._has_z
            and self._has_m == other._has_m
            and self._items == other._items
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        dims = dimension_name(self._has_z, self._has_m)
        return f"{type(self).__name__}({dims}, children={len(self._items)})"


def _nesting_depth(geom: object) -> int:
    return geom._depth if isinstance(geom, _Collection) else 1


class MultiPoint(_Collection[Point]):
    __slots__ = ()

    type: ClassVar[GeometryType] = GeometryType.MULTIPOINT
    _child_types = (Point,)

    @classmethod
    def _empty_child(cls, has_z: bool, has_m: bool) -> Point:
        return Point.empty(has_z, has_m)


class MultiLineString(_Collection[LineString]):
    __slots__ = ()

    type: ClassVar[GeometryType] = GeometryType.MULTILINESTRING
    _child_types = (LineString,)

    @classmethod
    def _empty_child(cls, has_z: bool, has_m: bool) -> LineString:
        return LineString.empty(has_z, has_m)


class MultiPolygon(_Collection[Polygon]):
    __slots__ = ()

    type: ClassVar[GeometryType] = GeometryType.MULTIPOLYGON
    _child_types = (Polygon,)

    @classmethod
    def _empty_child(cls, has_z: bool, has_m: bool) -> Polygon:
        return Polygon.empty(has_z, has_m)


class GeometryCollection(_Collection["Geometry"]):
    """Heterogeneous sequence of geometries, nested collections included."""

    __slots__ = ()

    type: ClassVar[GeometryType] = GeometryType.GEOMETRYCOLLECTION

    @classmethod
    def _empty_child(cls, has_z: bool, has_m: bool) -> Geometry:
        return GeometryCollection.empty(has_z, has_m)


Geometry: TypeAlias = (
    Point
    | LineString
    | Polygon
    | MultiPoint
    | MultiLineString
    | MultiPolygon
    | GeometryCollection
)

GEOMETRY_CLASSES: tuple[type, ...] = (
    Point,
    LineString,
    Polygon,
    MultiPoint,
    MultiLineString,
    MultiPolygon,
    GeometryCollection,
)

GeometryCollection._child_types = GEOMETRY_CLASSES
