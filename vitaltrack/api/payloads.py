from __future__ import annotations
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from vitaltrack.storage.records import VitalsSnapshot


class _WireModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class WaveformUpdate(_WireModel):
    """Fast channel: every tick, only to the patient's group."""

    entity_id: int
    heart_rate: int
    oxygen: int
    temperature: float
    fetal_rate: Optional[int] = None
    tier: str

    @classmethod
    def from_snapshot(cls, s: VitalsSnapshot) -> WaveformUpdate:
        return cls(entity_id=s.entity_id, heart_rate=s.heart_rate, oxygen=s.oxygen,
                   temperature=round(s.temperature, 1), fetal_rate=s.fetal_rate,
                   tier=s.tier.value)


class DashboardUpdate(_WireModel):
    """Slow channel: throttled summary, to every connection."""

    entity_id: int
    tier: str
    heart_rate: int
    oxygen: int
    temperature: float

    @classmethod
    def from_snapshot(cls, s: VitalsSnapshot) -> DashboardUpdate:
        return cls(entity_id=s.entity_id, tier=s.tier.value, heart_rate=s.heart_rate,
                   oxygen=s.oxygen, temperature=round(s.temperature, 1))
