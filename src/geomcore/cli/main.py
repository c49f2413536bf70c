"""geomcore CLI - convert geometries between WKT, geometry_t and WKB.

Command-line interface for inspecting and batch-converting geometries.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer

from geomcore import __version__
from geomcore.codec.blob import deserialize, serialize, serialized_size
from geomcore.core.batch import BatchContext, BatchResult
from geomcore.core.envelope import tile_envelope
from geomcore.exceptions import GeometryError
from geomcore.geometry.bbox import BoundingBox, compute_bbox
from geomcore.geometry.traversal import depth, vertex_count
from geomcore.geometry.types import dimension_name
from geomcore.memory.arena import Arena
from geomcore.utils.logging import configure_logging, get_logger
from geomcore.wkt.reader import read_ewkt, read_wkt
from geomcore.wkt.writer import write_wkt

app = typer.Typer(
    name="geomcore",
    help="geomcore: geometry parsing and serialization",
    add_completion=False,
)


class OutputFormat(str, Enum):
    """Binary encoding written by ``convert``."""

    blob = "blob"  # geometry_t storage format
    wkb = "wkb"  # ISO well-known binary


Verbose = Annotated[
    int,
    typer.Option("--verbose", "-v", count=True, help="Increase verbosity (-v, -vv)"),
]
JsonOutput = Annotated[bool, typer.Option("--json", help="Output as JSON")]
Precision = Annotated[
    int | None,
    typer.Option(
        "--precision", "-p", min=1, help="Significant digits for coordinates"
    ),
]


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version(json_output: JsonOutput = False) -> None:
    """Show version information."""
    if json_output:
        typer.echo(json.dumps({"version": __version__}))
    else:
        typer.echo(f"geomcore {__version__}")


@app.command()
def parse(
    wkt: Annotated[str, typer.Argument(help="WKT or EWKT text to parse")],
    json_output: JsonOutput = False,
    verbose: Verbose = 0,
) -> None:
    """Parse WKT and print its geometry_t encoding as hex."""
    _configure_logging(verbose)
    logger = get_logger(__name__)

    with Arena() as arena:
        try:
            srid, geom = read_ewkt(wkt, arena)
            blob = serialize(geom)
        except GeometryError as e:
            _fail(e, json_output)

        logger.info("Parsed geometry", type=geom.type.keyword, size=len(blob))
        if json_output:
            summary: dict[str, Any] = {
                "type": geom.type.keyword,
                "dimension": dimension_name(geom.has_z, geom.has_m),
                "srid": srid,
                "empty": geom.is_empty,
                "vertices": vertex_count(geom),
                "depth": depth(geom),
                "size": serialized_size(geom),
                "bbox": _bbox_to_dict(compute_bbox(geom)),
                "blob": blob.hex(),
            }
            typer.echo(json.dumps(summary, indent=2))
        else:
            typer.echo(blob.hex())


@app.command()
def decode(
    blob_hex: Annotated[str, typer.Argument(help="geometry_t encoding as hex")],
    precision: Precision = None,
    verbose: Verbose = 0,
) -> None:
    """Decode a hex geometry_t value and print it as WKT."""
    _configure_logging(verbose)

    try:
        blob = bytes.fromhex(blob_hex.strip())
    except ValueError as e:
        typer.echo(f"Error: invalid hex input: {e}", err=True)
        raise typer.Exit(1) from None

    with Arena() as arena:
        try:
            geom = deserialize(blob, arena)
        except GeometryError as e:
            _fail(e, json_output=False)
        typer.echo(write_wkt(geom, precision))


@app.command()
def bbox(
    wkt: Annotated[str, typer.Argument(help="WKT text")],
    verbose: Verbose = 0,
) -> None:
    """Print the bounding box of a WKT geometry as JSON."""
    _configure_logging(verbose)

    with Arena() as arena:
        try:
            geom = read_wkt(wkt, arena)
        except GeometryError as e:
            _fail(e, json_output=True)
        typer.echo(json.dumps(_bbox_to_dict(compute_bbox(geom))))


@app.command()
def tile(
    zoom: Annotated[int, typer.Argument(help="Zoom level (0-30)")],
    x: Annotated[int, typer.Argument(help="Tile column")],
    y: Annotated[int, typer.Argument(help="Tile row, counted from the top")],
    precision: Precision = None,
) -> None:
    """Print the Web Mercator extent of an XYZ tile as WKT."""
    with Arena() as arena:
        try:
            polygon = tile_envelope(zoom, x, y, arena)
        except ValueError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from None
        typer.echo(write_wkt(polygon, precision))


@app.command()
def convert(
    input_path: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            help="File with one WKT geometry per line",
        ),
    ],
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write hex rows here instead of stdout"),
    ] = None,
    output_format: Annotated[
        OutputFormat, typer.Option("--format", "-f", help="Binary output encoding")
    ] = OutputFormat.blob,
    json_output: JsonOutput = False,
    verbose: Verbose = 0,
) -> None:
    """Convert a file of WKT lines to hex, one output line per input line.

    Blank lines are treated as NULL and produce blank output lines. Rows that
    fail to parse also produce blank lines and are reported on stderr; the
    command exits with status 1 if any row failed.
    """
    _configure_logging(verbose)
    logger = get_logger(__name__)

    lines = input_path.read_text(encoding="utf-8").splitlines()
    rows = [line if line.strip() else None for line in lines]

    context = BatchContext()
    result: BatchResult[bytes]
    if output_format is OutputFormat.wkb:
        result = context.wkt_to_wkb_batch(rows)
    else:
        result = context.wkt_to_blob_batch(rows)

    hex_rows = "\n".join("" if value is None else value.hex() for value in result.values)
    if output is not None:
        output.write_text(hex_rows + "\n" if hex_rows else "", encoding="utf-8")
        logger.info("Wrote output", path=str(output), rows=len(result))
    elif hex_rows:
        typer.echo(hex_rows)

    if json_output:
        report = {
            "batch_id": result.batch_id,
            "rows": len(result),
            "failed": len(result.errors),
            "errors": [
                {"line": error.row + 1, "type": error.error_type, "message": error.message}
                for error in result.errors
            ],
        }
        typer.echo(json.dumps(report, indent=2), err=True)
    else:
        for error in result.errors:
            typer.echo(f"line {error.row + 1}: {error.message}", err=True)

    raise typer.Exit(0 if result.ok else 1)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """geomcore: geometry parsing and serialization."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


# =============================================================================
# Helpers
# =============================================================================


def _configure_logging(verbose: int) -> None:
    """Configure logging based on verbosity level."""
    if verbose == 0:
        level = "WARNING"
    elif verbose == 1:
        level = "INFO"
    else:  # verbose >= 2
        level = "DEBUG"

    configure_logging(level=level)


def _fail(error: GeometryError, json_output: bool) -> NoReturn:
    """Report a geometry error and abort the command."""
    if json_output:
        typer.echo(json.dumps({"error": str(error), "type": type(error).__name__}))
    else:
        typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(1) from None


def _bbox_to_dict(box: BoundingBox) -> dict[str, Any]:
    if box.is_empty:
        return {"empty": True}
    return {"empty": False, **box.model_dump(exclude_none=True)}
