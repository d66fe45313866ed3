"""
Display metric model.

Maps a raw STV Direct record to the values the report template draws:
the reading itself, its rating bucket and the gauge positions (as
percentages of the gauge width) of the value and both cutoffs.

Gauge positions are deliberately not clamped. A reading outside
[min, max] yields a marker below 0 or above 100.
"""

import logging
import math
import typing
from dataclasses import dataclass

from .parameter import DEFAULT_PARAMETER_SPECS, ID_COLUMN, ParameterSpec, Rating

LOGGER = logging.getLogger(__name__)

TemplateData = dict[str, "DisplayMetric"]


@dataclass(frozen=True)
class DisplayMetric:
    """
    Per-parameter values consumed by the report template.

    Attributes:
        value: Raw reading from the record.
        rating: Low / Optimum / High bucket.
        cut1_percent: Gauge position of the low cutoff.
        cut2_percent: Gauge position of the high cutoff.
        marker_percent: Gauge position of the reading.
    """

    value: float
    rating: Rating
    cut1_percent: float
    cut2_percent: float
    marker_percent: float

    def to_dict(self) -> dict[str, typing.Any]:
        return {
            "value": self.value,
            "rating": self.rating.value,
            "cut1Percent": self.cut1_percent,
            "cut2Percent": self.cut2_percent,
            "markerPercent": self.marker_percent,
        }


def _to_percent(x: float, spec: ParameterSpec) -> float:
    return (x - spec.min) / spec.span * 100


def rate_value(value: float, spec: ParameterSpec) -> Rating:
    """
    Both cutoffs are inclusive to Optimum. NaN compares false on both
    sides and therefore also lands in Optimum.
    """
    if value < spec.low_cutoff:
        return Rating.LOW
    if value > spec.high_cutoff:
        return Rating.HIGH
    return Rating.OPTIMUM


def compute_display_metric(record: typing.Mapping[str, typing.Any], spec: ParameterSpec) -> DisplayMetric:
    value = record[spec.name]
    if isinstance(value, float) and math.isnan(value):
        LOGGER.warning(
            "Test_ID %s: %s is NaN, rated %s",
            record.get(ID_COLUMN), spec.name, Rating.OPTIMUM,
        )
    return DisplayMetric(
        value=value,
        rating=rate_value(value, spec),
        cut1_percent=_to_percent(spec.low_cutoff, spec),
        cut2_percent=_to_percent(spec.high_cutoff, spec),
        marker_percent=_to_percent(value, spec),
    )


def build_template_data(
        record: typing.Mapping[str, typing.Any],
        specs: typing.Iterable[ParameterSpec] = DEFAULT_PARAMETER_SPECS,
) -> TemplateData:
    """
    Compute one DisplayMetric per spec whose parameter is present in the
    record, keyed by parameter name. Parameters are independent of each other.
    """
    return {
        spec.name: compute_display_metric(record, spec)
        for spec in specs
        if spec.name in record
    }
