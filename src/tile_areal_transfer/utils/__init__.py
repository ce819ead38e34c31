"""
Shared utilities: configuration, structured logging setup and the
exception hierarchy used across the pipeline.
"""

from .config import TransferConfig, MAX_ZOOM_DELTA
from .exceptions import (
    TileTransferError,
    ConfigurationError,
    InvalidTileAddressError,
    InvalidSubdivisionError,
    TileLoadError,
)
from .logging_config import configure_logging

__all__ = [
    "TransferConfig",
    "MAX_ZOOM_DELTA",
    "TileTransferError",
    "ConfigurationError",
    "InvalidTileAddressError",
    "InvalidSubdivisionError",
    "TileLoadError",
    "configure_logging",
]
