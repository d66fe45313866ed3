"""
Parameter domain model.

Defines the qualitative Rating buckets and the ParameterSpec gauge ranges
used to turn a soil-test reading into display metrics.
"""

import math
from dataclasses import dataclass
from enum import Enum

ID_COLUMN = "Test_ID"


class Rating(Enum):
    """
    Qualitative bucket for a parameter value relative to its two cutoffs.
    """
    LOW = "Low"
    OPTIMUM = "Optimum"
    HIGH = "High"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ParameterSpec:
    """
    Gauge range and rating cutoffs for one soil parameter.

    Attributes:
        name: Record field holding the value (e.g. 'pH').
        min: Left end of the gauge.
        max: Right end of the gauge.
        low_cutoff: Values strictly below are rated Low.
        high_cutoff: Values strictly above are rated High.
        unit: Display unit, empty for dimensionless parameters.
        label: Display name; defaults to `name`.
    """

    name: str
    min: float
    max: float
    low_cutoff: float
    high_cutoff: float
    unit: str = ""
    label: str = ""

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError(f"Invalid parameter name: {self.name!r}")

        for field_name in ("min", "max", "low_cutoff", "high_cutoff"):
            if math.isnan(getattr(self, field_name)):
                raise ValueError(f"{self.name}: {field_name} must be a number")

        # min == max would divide by zero in the gauge interpolation
        if not self.min < self.max:
            raise ValueError(
                f"{self.name}: min ({self.min}) must be lower than max ({self.max})"
            )

        if self.low_cutoff > self.high_cutoff:
            raise ValueError(
                f"{self.name}: low_cutoff ({self.low_cutoff}) must not exceed "
                f"high_cutoff ({self.high_cutoff})"
            )

        if not self.label:
            object.__setattr__(self, "label", self.name)

    @property
    def span(self) -> float:
        return self.max - self.min


PH_SPEC = ParameterSpec(name="pH", min=3, max=11, low_cutoff=6.5, high_cutoff=7.5)

DEFAULT_PARAMETER_SPECS: tuple[ParameterSpec, ...] = (PH_SPEC,)
