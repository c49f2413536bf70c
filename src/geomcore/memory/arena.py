"""Bump allocator backing every geometry built during one batch.

Memory is handed out from a list of numpy byte blocks. Nothing is freed
individually: ``reset()`` rewinds the bump pointer in O(1) and the blocks
are reused by the next batch. Every reset bumps ``generation`` so that
vertex arrays can detect (with ``DEBUG_CHECKS`` on) that they outlived
their batch.
"""

from __future__ import annotations

from types import TracebackType

import numpy as np
import numpy.typing as npt

from geomcore.config import settings
from geomcore.exceptions import ArenaExhaustedError
from geomcore.utils.logging import get_logger

logger = get_logger(__name__)

ALIGNMENT = 8


def _align(size: int) -> int:
    return (size + ALIGNMENT - 1) & ~(ALIGNMENT - 1)


class Arena:
    """Arena allocator owning raw memory for one execution batch.

    Not thread-safe: each thread running batches needs its own instance.

    Example:
        >>> arena = Arena(block_size=1024)
        >>> coords = arena.allocate_doubles(4)
        >>> coords.shape
        (4,)
        >>> arena.reset()
        >>> arena.bytes_allocated
        0
    """

    __slots__ = (
        "_block_size",
        "_max_bytes",
        "_blocks",
        "_block_index",
        "_offset",
        "_allocated",
        "_capacity",
        "_generation",
    )

    def __init__(
        self,
        block_size: int | None = None,
        max_bytes: int | None = None,
    ) -> None:
        """Create an empty arena.

        Args:
            block_size: Size of each regular block in bytes.
                Defaults to settings.ARENA_BLOCK_SIZE.
            max_bytes: Upper bound on bytes handed out between resets
                (0 disables the bound). Defaults to settings.ARENA_MAX_BYTES.
        """
        self._block_size = _align(block_size or settings.ARENA_BLOCK_SIZE)
        self._max_bytes = settings.ARENA_MAX_BYTES if max_bytes is None else max_bytes
        self._blocks: list[npt.NDArray[np.uint8]] = []
        self._block_index = 0
        self._offset = 0
        self._allocated = 0
        self._capacity = 0
        self._generation = 0

    @property
    def generation(self) -> int:
        """Number of resets performed so far."""
        return self._generation

    @property
    def bytes_allocated(self) -> int:
        """Bytes handed out (including alignment padding) since the last reset."""
        return self._allocated

    @property
    def capacity(self) -> int:
        """Total bytes held in blocks, allocated or not."""
        return self._capacity

    @property
    def block_count(self) -> int:
        return len(self._blocks)

    def allocate(self, size: int) -> npt.NDArray[np.uint8]:
        """Allocate ``size`` bytes valid until the next reset.

        Args:
            size: Number of bytes requested.

        Returns:
            A writable uint8 view of exactly ``size`` bytes, 8-byte aligned.

        Raises:
            ValueError: If size is negative.
            ArenaExhaustedError: If the allocation would exceed max_bytes or
                the underlying memory cannot be obtained.
        """
        if size < 0:
            raise ValueError(f"Allocation size must be non-negative, got {size}")
        aligned = _align(size)
        if aligned == 0:
            return np.empty(0, dtype=np.uint8)
        if self._max_bytes and self._allocated + aligned > self._max_bytes:
            raise ArenaExhaustedError(aligned, self._allocated, self._max_bytes)

        while self._block_index < len(self._blocks):
            block = self._blocks[self._block_index]
            if self._offset + aligned <= block.size:
                view = block[self._offset : self._offset + size]
                self._offset += aligned
                self._allocated += aligned
                return view
            # Current block cannot fit the request, move on to the next one
            self._block_index += 1
            self._offset = 0

        block = self._grow(max(self._block_size, aligned))
        self._block_index = len(self._blocks) - 1
        self._offset = aligned
        self._allocated += aligned
        return block[:size]

    def allocate_doubles(self, count: int) -> npt.NDArray[np.float64]:
        """Allocate room for ``count`` float64 values."""
        return self.allocate(count * 8).view(np.float64)

    def reset(self) -> None:
        """Invalidate every allocation and rewind to the first block."""
        self._block_index = 0
        self._offset = 0
        self._allocated = 0
        self._generation += 1

    def _grow(self, size: int) -> npt.NDArray[np.uint8]:
        try:
            block = np.empty(size, dtype=np.uint8)
        except MemoryError as e:
            raise ArenaExhaustedError(size, self._allocated, self._max_bytes) from e
        self._blocks.append(block)
        self._capacity += size
        logger.debug(
            "Arena block allocated",
            block_size=size,
            block_count=len(self._blocks),
            capacity=self._capacity,
        )
        return block

    def __enter__(self) -> Arena:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.reset()

    def __repr__(self) -> str:
        return (
            f"Arena(allocated={self._allocated}, capacity={self._capacity}, "
            f"blocks={len(self._blocks)}, generation={self._generation})"
        )
