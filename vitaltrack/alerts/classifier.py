"""
Severity Classifier
====================
Maps a vitals reading to a severity tier.

Rules (first match wins):
1. CRITICAL: HR > 120, SpO2 < 90 or temperature > 38.0
2. WARNING:  HR > 100 or SpO2 < 95
3. NORMAL:   everything else
"""

from enum import Enum

from vitaltrack.config.settings import (
    CRITICAL_HR_ABOVE,
    CRITICAL_SPO2_BELOW,
    CRITICAL_TEMP_ABOVE,
    WARNING_HR_ABOVE,
    WARNING_SPO2_BELOW,
)


class Tier(str, Enum):
    NORMAL = "Normal"
    WARNING = "Warning"
    CRITICAL = "Critical"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @property
    def is_abnormal(self) -> bool:
        return self is not Tier.NORMAL

    def __lt__(self, other):
        if not isinstance(other, Tier):
            return NotImplemented
        return self.severity < other.severity

    def __le__(self, other):
        if not isinstance(other, Tier):
            return NotImplemented
        return self.severity <= other.severity

    def __gt__(self, other):
        if not isinstance(other, Tier):
            return NotImplemented
        return self.severity > other.severity

    def __ge__(self, other):
        if not isinstance(other, Tier):
            return NotImplemented
        return self.severity >= other.severity


_SEVERITY = {Tier.NORMAL: 0, Tier.WARNING: 1, Tier.CRITICAL: 2}


def classify(heart_rate: float, oxygen: float, temperature: float) -> Tier:
    """Return the severity tier for one reading."""
    if (heart_rate > CRITICAL_HR_ABOVE
            or oxygen < CRITICAL_SPO2_BELOW
            or temperature > CRITICAL_TEMP_ABOVE):
        return Tier.CRITICAL
    if heart_rate > WARNING_HR_ABOVE or oxygen < WARNING_SPO2_BELOW:
        return Tier.WARNING
    return Tier.NORMAL
