"""
Command-line interface for tile-areal-transfer.

Commands:
    convert  Convert a directory of z-x-y.geojson source tiles
    grid     Write the empty subdivision grid of one tile
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

import structlog

from .processing.batch_converter import BatchConverter
from .tile_generation.subdivision_grid import generate_subdivision_grid
from .tile_generation.tile_math import TileAddress
from .utils.config import TransferConfig, MAX_ZOOM_DELTA
from .utils.exceptions import (
    ConfigurationError,
    InvalidSubdivisionError,
    InvalidTileAddressError,
    TileTransferError,
)
from .utils.logging_config import LOG_FORMATS, configure_logging


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="tile-areal-transfer",
        description="Transfer polygon attribute values onto tile-aligned grids",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: INFO or TILE_TRANSFER_LOG_LEVEL)",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Log renderer (default: json or TILE_TRANSFER_LOG_FORMAT)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    convert_parser = subparsers.add_parser(
        "convert",
        help="Convert a directory of source tiles",
    )
    convert_parser.add_argument("input_dir", type=Path, help="Directory of z-x-y.geojson files")
    convert_parser.add_argument("output_dir", type=Path, help="Directory for converted tiles")
    convert_parser.add_argument(
        "-a", "--attribute",
        default=None,
        help="Property to transfer (default: population)",
    )
    convert_parser.add_argument(
        "--dz",
        type=int,
        default=None,
        help=f"Zoom delta, 0-{MAX_ZOOM_DELTA} (default: 1)",
    )
    convert_parser.add_argument(
        "-w", "--workers",
        type=int,
        default=None,
        help="Tiles converted concurrently (default: 1)",
    )
    convert_parser.add_argument(
        "--no-index",
        action="store_true",
        help="Scan every source polygon instead of querying a spatial index",
    )

    grid_parser = subparsers.add_parser(
        "grid",
        help="Write the empty subdivision grid of a tile",
    )
    grid_parser.add_argument("zoom", type=int)
    grid_parser.add_argument("x", type=int)
    grid_parser.add_argument("y", type=int)
    grid_parser.add_argument("--dz", type=int, default=1, help="Zoom delta (default: 1)")
    grid_parser.add_argument("-o", "--output", type=Path, help="Output file (default: stdout)")

    return parser


def cmd_convert(args: argparse.Namespace) -> int:
    """Handle the convert command."""
    config = TransferConfig.from_env(
        attribute=args.attribute,
        dz=args.dz,
        input_dir=args.input_dir,
        output_dir=args.output_dir,
        max_workers=args.workers,
        use_spatial_index=False if args.no_index else None,
        log_level=args.log_level,
        log_format=args.log_format,
    )
    configure_logging(config.log_level, config.log_format)
    logger = structlog.get_logger(component="cli")

    converter = BatchConverter(config)
    batch = converter.run_directory()

    summary = batch.summary()
    if batch.failed:
        logger.error("Some tiles failed to convert", failed=sorted(batch.failed))
    print(json.dumps(summary))
    return EXIT_OK if not batch.failed else EXIT_FAILURE


def cmd_grid(args: argparse.Namespace) -> int:
    """Handle the grid command."""
    configure_logging(args.log_level or "INFO", args.log_format or "json")

    tile = TileAddress(args.zoom, args.x, args.y)
    grid = generate_subdivision_grid(tile, args.dz)
    document = json.dumps(grid.to_geojson(), separators=(",", ":"))

    if args.output:
        args.output.write_text(document, encoding="utf-8")
        print(f"Wrote {len(grid)} cells to {args.output}", file=sys.stderr)
    else:
        print(document)

    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_FAILURE

    try:
        if args.command == "convert":
            return cmd_convert(args)
        if args.command == "grid":
            return cmd_grid(args)
    except (ConfigurationError, InvalidSubdivisionError, InvalidTileAddressError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except (TileTransferError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    parser.print_help()
    return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
