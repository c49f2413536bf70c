"""Arena memory management for geometry batches."""

from geomcore.memory.arena import Arena

__all__ = ["Arena"]
