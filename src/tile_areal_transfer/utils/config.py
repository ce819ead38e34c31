"""
Run configuration for the tile areal transfer pipeline.

Configuration can be given explicitly or read from ``TILE_TRANSFER_*``
environment variables. Validation happens at construction so a bad zoom
delta or an empty attribute name stops the run before any tile is touched.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .exceptions import ConfigurationError
from .logging_config import LOG_FORMATS


# Sub-cells per tile edge are addressed on a 256-unit raster, so the zoom
# delta can be at most 8.
MAX_ZOOM_DELTA = 8

DEFAULT_ATTRIBUTE = "population"
ENV_PREFIX = "TILE_TRANSFER_"


@dataclass
class TransferConfig:
    """Configuration for a batch conversion run."""

    attribute: str = DEFAULT_ATTRIBUTE
    """Property carried from source polygons onto the generated cells."""

    dz: int = 1
    """Zoom delta between a source tile and the area it is addressed in."""

    input_dir: Optional[Path] = None
    """Directory holding ``z-x-y.geojson`` source tiles."""

    output_dir: Optional[Path] = None
    """Directory receiving one ``<source>.geojson`` per converted tile."""

    max_workers: int = 1
    """Number of tiles converted concurrently."""

    use_spatial_index: bool = True
    """Narrow containment candidates with an STR-tree before testing."""

    log_level: str = "INFO"
    log_format: str = "json"

    def __post_init__(self):
        if not isinstance(self.attribute, str) or not self.attribute.strip():
            raise ConfigurationError("attribute must be a non-empty string")
        if isinstance(self.dz, bool) or not isinstance(self.dz, int):
            raise ConfigurationError(f"dz must be an integer, got {self.dz!r}")
        if not 0 <= self.dz <= MAX_ZOOM_DELTA:
            raise ConfigurationError(
                f"dz must be between 0 and {MAX_ZOOM_DELTA}, got {self.dz}"
            )
        if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int):
            raise ConfigurationError(f"max_workers must be an integer, got {self.max_workers!r}")
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1")
        if self.log_format not in LOG_FORMATS:
            raise ConfigurationError(
                f"log_format must be one of {', '.join(LOG_FORMATS)}"
            )
        if self.input_dir is not None:
            self.input_dir = Path(self.input_dir)
        if self.output_dir is not None:
            self.output_dir = Path(self.output_dir)

    @classmethod
    def from_env(cls, environ: Optional[dict] = None, **overrides) -> "TransferConfig":
        """
        Build a configuration from environment variables.

        Recognised variables: ``TILE_TRANSFER_ATTRIBUTE``, ``TILE_TRANSFER_DZ``,
        ``TILE_TRANSFER_INPUT_DIR``, ``TILE_TRANSFER_OUTPUT_DIR``,
        ``TILE_TRANSFER_MAX_WORKERS``, ``TILE_TRANSFER_SPATIAL_INDEX``,
        ``TILE_TRANSFER_LOG_LEVEL`` and ``TILE_TRANSFER_LOG_FORMAT``.
        Keyword overrides that are not ``None`` win over the environment.

        Args:
            environ: Mapping to read instead of ``os.environ``
            **overrides: Explicit field values

        Returns:
            Validated TransferConfig
        """
        env = os.environ if environ is None else environ

        def get(name: str, default=None):
            return env.get(ENV_PREFIX + name, default)

        try:
            values = {
                "attribute": get("ATTRIBUTE", DEFAULT_ATTRIBUTE),
                "dz": int(get("DZ", "1")),
                "input_dir": get("INPUT_DIR"),
                "output_dir": get("OUTPUT_DIR"),
                "max_workers": int(get("MAX_WORKERS", "1")),
                "use_spatial_index": _parse_bool(get("SPATIAL_INDEX", "true")),
                "log_level": get("LOG_LEVEL", "INFO"),
                "log_format": get("LOG_FORMAT", "json"),
            }
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment configuration: {e}") from e

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _parse_bool(value: str) -> bool:
    lowered = str(value).strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {value!r}")
