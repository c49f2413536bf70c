"""CLI module for geomcore.

Provides the command-line interface for parsing, decoding and
batch-converting geometries.
"""

from __future__ import annotations

from geomcore.cli.main import OutputFormat, app

__all__ = ["OutputFormat", "app"]
