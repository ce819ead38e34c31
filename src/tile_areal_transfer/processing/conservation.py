"""
Conservation Validator

Compares the attribute total of a source collection with the total of the
converted cells. Because the join copies values instead of apportioning
them, the two totals normally differ; the report exists to surface that
drift (or a join defect that leaves most cells unmatched), never to reject
or correct a conversion.
"""

import numbers
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Tuple

import pandas as pd
import structlog

from ..data_ingestion.feature_collection import FeatureCollection


logger = structlog.get_logger(component="ConservationValidator")


@dataclass(frozen=True)
class ConservationReport:
    """Attribute totals before and after a conversion."""
    attribute: str
    source_total: float
    result_total: float
    source_features: int
    result_features: int
    skipped_values: int = 0
    source: Optional[str] = None
    area: Optional[str] = None

    @property
    def drift(self) -> float:
        """Result total minus source total."""
        return self.result_total - self.source_total

    @property
    def ratio(self) -> Optional[float]:
        """Result total divided by source total, None when the source sums to 0."""
        if self.source_total == 0:
            return None
        return self.result_total / self.source_total

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["drift"] = self.drift
        data["ratio"] = self.ratio
        return data


def _sum_attribute(collection: FeatureCollection, attribute: str) -> Tuple[float, int]:
    """Sum numeric values of ``attribute``; return (total, values skipped)."""
    total = 0
    skipped = 0
    for feature in collection.features:
        value = feature.properties.get(attribute)
        if (
            value is None
            or isinstance(value, bool)
            or not isinstance(value, numbers.Real)
            or pd.isna(value)
        ):
            skipped += 1
            continue
        total += value
    return total, skipped


def validate_conservation(
    source: FeatureCollection,
    result: FeatureCollection,
    attribute: str,
) -> ConservationReport:
    """
    Report the attribute totals of ``source`` and ``result``.

    Args:
        source: Collection the values were read from
        result: Filtered collection of cells that received a value
        attribute: Property being transferred

    Returns:
        ConservationReport; the report is also logged
    """
    source_total, source_skipped = _sum_attribute(source, attribute)
    result_total, result_skipped = _sum_attribute(result, attribute)

    report = ConservationReport(
        attribute=attribute,
        source_total=source_total,
        result_total=result_total,
        source_features=len(source),
        result_features=len(result),
        skipped_values=source_skipped + result_skipped,
        source=result.source or source.name,
        area=result.area,
    )

    logger.info(
        "Conservation check",
        source=report.source,
        area=report.area,
        attribute=attribute,
        source_total=report.source_total,
        result_total=report.result_total,
        drift=report.drift,
    )
    if report.skipped_values:
        logger.warning(
            "Non-numeric values excluded from conservation totals",
            source=report.source,
            skipped=report.skipped_values,
        )

    return report
