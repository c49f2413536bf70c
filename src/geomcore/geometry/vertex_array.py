"""Flat, dimension-tagged coordinate storage.

A VertexArray is the only leaf of the geometry tree. Its doubles live in
an Arena block, laid out as ``count`` rows of ``dimension`` values
(x, y, [z], [m]).
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Self

import numpy as np
import numpy.typing as npt

from geomcore.config import settings
from geomcore.geometry.types import dimension, dimension_name
from geomcore.memory.arena import Arena

Vertex = tuple[float, ...]

_EMPTY_BUFFERS: dict[int, npt.NDArray[np.float64]] = {
    dim: np.empty((0, dim), dtype=np.float64) for dim in (2, 3, 4)
}

for _buffer in _EMPTY_BUFFERS.values():
    _buffer.flags.writeable = False


class VertexArray:
    """Ordered sequence of coordinate tuples of uniform dimension.

    Instances are created through ``empty``, ``copy`` or ``allocate``; the
    constructor is internal. Vertex arrays are never freed individually,
    they are valid exactly as long as their arena has not been reset.
    """

    __slots__ = ("_data", "_has_z", "_has_m", "_arena", "_generation")

    def __init__(
        self,
        data: npt.NDArray[np.float64],
        has_z: bool,
        has_m: bool,
        arena: Arena | None = None,
    ) -> None:
        self._data = data
        self._has_z = has_z
        self._has_m = has_m
        self._arena = arena
        self._generation = arena.generation if arena is not None else 0

    @classmethod
    def empty(cls, has_z: bool = False, has_m: bool = False) -> Self:
        """Create a vertex array with zero vertices."""
        return cls(_EMPTY_BUFFERS[dimension(has_z, has_m)], has_z, has_m)

    @classmethod
    def allocate(
        cls,
        arena: Arena,
        count: int,
        has_z: bool = False,
        has_m: bool = False,
    ) -> Self:
        """Allocate ``count`` zeroed vertices to be filled in with ``set``."""
        if count == 0:
            return cls.empty(has_z, has_m)
        dim = dimension(has_z, has_m)
        buffer = arena.allocate_doubles(count * dim).reshape(count, dim)
        buffer.fill(0.0)
        return cls(buffer, has_z, has_m, arena)

    @classmethod
    def copy(
        cls,
        arena: Arena,
        raw: npt.ArrayLike | bytes | bytearray | memoryview,
        count: int,
        has_z: bool = False,
        has_m: bool = False,
    ) -> Self:
        """Deep-copy external coordinates into arena-owned storage.

        Args:
            arena: Arena that will own the copy.
            raw: Flat doubles, either as a sequence/array or as a
                little-endian float64 byte buffer.
            count: Number of vertices in ``raw``.
            has_z: Whether each vertex carries a Z value.
            has_m: Whether each vertex carries an M value.

        Returns:
            A new VertexArray owned by ``arena``.

        Raises:
            ValueError: If DEBUG_CHECKS is on and ``raw`` does not hold
                exactly ``count * dimension`` doubles.
        """
        dim = dimension(has_z, has_m)
        if isinstance(raw, bytes | bytearray | memoryview):
            source = np.frombuffer(raw, dtype="<f8")
        else:
            source = np.asarray(raw, dtype=np.float64).reshape(-1)
        if settings.DEBUG_CHECKS and source.size != count * dim:
            raise ValueError(
                f"Expected {count * dim} doubles for {count} "
                f"{dimension_name(has_z, has_m)} vertices, got {source.size}"
            )
        if count == 0:
            return cls.empty(has_z, has_m)
        buffer = arena.allocate_doubles(count * dim).reshape(count, dim)
        buffer[...] = source.reshape(count, dim)
        return cls(buffer, has_z, has_m, arena)

    @property
    def has_z(self) -> bool:
        return self._has_z

    @property
    def has_m(self) -> bool:
        return self._has_m

    @property
    def dimension(self) -> int:
        """Number of doubles per vertex (2 to 4)."""
        return self._data.shape[1]

    @property
    def count(self) -> int:
        return self._data.shape[0]

    @property
    def is_empty(self) -> bool:
        return self._data.shape[0] == 0

    @property
    def coords(self) -> npt.NDArray[np.float64]:
        """Read-only ``(count, dimension)`` view of the coordinates."""
        self._check_live()
        view = self._data.view()
        view.flags.writeable = False
        return view

    def get(self, index: int) -> Vertex:
        """Return vertex ``index`` as ``(x, y[, z][, m])``."""
        self._check_index(index)
        return tuple(self._data[index].tolist())

    def set(self, index: int, axis: int, value: float) -> None:
        """Set one ordinate of vertex ``index`` in place.

        ``axis`` is the position within the vertex tuple, so M is axis 2
        on an XYM array and axis 3 on an XYZM array.
        """
        self._check_index(index)
        if settings.DEBUG_CHECKS and not 0 <= axis < self.dimension:
            raise IndexError(f"Axis {axis} out of range [0, {self.dimension - 1}]")
        self._data[index, axis] = value

    def is_closed(self) -> bool:
        """True if the array is non-empty and its first vertex equals its last."""
        if self.is_empty:
            return False
        return bool(
            np.array_equal(self._data[0], self._data[-1], equal_nan=True)
        )

    def _check_index(self, index: int) -> None:
        if not settings.DEBUG_CHECKS:
            return
        self._check_live()
        if not 0 <= index < self.count:
            raise IndexError(f"Vertex {index} out of range [0, {self.count - 1}]")

    def _check_live(self) -> None:
        if (
            settings.DEBUG_CHECKS
            and self._arena is not None
            and self._arena.generation != self._generation
        ):
            raise RuntimeError("Vertex array used after its arena was reset")

    def __len__(self) -> int:
        return self._data.shape[0]

    def __iter__(self) -> Iterator[Vertex]:
        self._check_live()
        for row in self._data.tolist():
            yield tuple(row)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VertexArray):
            return NotImplemented
        return (
            self._has_z == other._has_z
            and self._has_m == other._has_m
            and self._data.shape == other._data.shape
            and bool(np.array_equal(self._data, other._data, equal_nan=True))
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        dims = dimension_name(self._has_z, self._has_m)
        return f"VertexArray({dims}, count={self.count})"
