"""
Persisted Record Types
=======================
Rows exchanged between the scheduler, the write-behind buffer and the store.
All of them are immutable once built.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from vitaltrack.alerts.classifier import Tier


@dataclass(frozen=True)
class DirectoryEntry:
    """One patient as seen by the scheduler."""

    id: int
    is_special_case: bool = False   # pregnant -> fetal rate simulated


@dataclass(frozen=True)
class VitalsSnapshot:
    entity_id: int
    heart_rate: int
    oxygen: int
    temperature: float
    fetal_rate: Optional[int]
    tier: Tier
    timestamp: datetime


@dataclass(frozen=True)
class AlertRecord:
    entity_id: int
    tier: Tier
    message: str
    timestamp: datetime

    @classmethod
    def from_snapshot(cls, snapshot: VitalsSnapshot) -> "AlertRecord":
        message = (f"{snapshot.tier.value} Vitals: HR {snapshot.heart_rate}, "
                   f"SpO2 {snapshot.oxygen}%")
        return cls(snapshot.entity_id, snapshot.tier, message, snapshot.timestamp)

    def to_dict(self) -> dict:
        return {
            "kind": "alert",
            "entity_id": self.entity_id,
            "tier": self.tier.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class VitalRecord:
    entity_id: int
    heart_rate: int
    oxygen: int
    temperature: float
    fetal_rate: Optional[int]
    timestamp: datetime

    @classmethod
    def from_snapshot(cls, snapshot: VitalsSnapshot) -> "VitalRecord":
        return cls(snapshot.entity_id, snapshot.heart_rate, snapshot.oxygen,
                   snapshot.temperature, snapshot.fetal_rate, snapshot.timestamp)

    def to_dict(self) -> dict:
        return {
            "kind": "vital",
            "entity_id": self.entity_id,
            "heart_rate": self.heart_rate,
            "oxygen": self.oxygen,
            "temperature": round(self.temperature, 2),
            "fetal_rate": self.fetal_rate,
            "timestamp": self.timestamp.isoformat(),
        }
