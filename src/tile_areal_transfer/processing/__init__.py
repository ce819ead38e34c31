"""
Processing Module

The value transfer itself: point-in-polygon join of source values onto
subdivision cells, the conservation check, the per-tile converter and the
batch driver that runs conversions over many tiles.
"""

from .value_join import Containment, ValueJoiner, check_containment, join_values
from .conservation import ConservationReport, validate_conservation
from .tile_converter import ConversionResult, TileConverter, convert_tile
from .batch_converter import BatchConverter, BatchResult, write_result

__all__ = [
    "Containment",
    "ValueJoiner",
    "check_containment",
    "join_values",
    "ConservationReport",
    "validate_conservation",
    "ConversionResult",
    "TileConverter",
    "convert_tile",
    "BatchConverter",
    "BatchResult",
    "write_result",
]
