"""
Exception hierarchy for the tile areal transfer pipeline.

Configuration-level errors are fatal to a run; tile-level errors are caught
by the batch driver, logged and recorded against the offending tile.
"""


class TileTransferError(Exception):
    """Base class for all errors raised by the transfer pipeline."""


class ConfigurationError(TileTransferError, ValueError):
    """Raised when the run configuration is unusable."""


class InvalidTileAddressError(TileTransferError, ValueError):
    """Raised when a tile address falls outside its zoom level's range."""


class InvalidSubdivisionError(TileTransferError, ValueError):
    """Raised when a zoom delta cannot produce a subdivision grid."""


class TileLoadError(TileTransferError):
    """Raised when a source tile file cannot be read or decoded."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path
