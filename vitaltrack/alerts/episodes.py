"""
Alert Episode Grouper
======================
Compresses the raw alert log into display episodes.

Walks alerts newest -> oldest. An older alert joins the current episode when
it is for the same patient, has the same tier, and sits less than
EPISODE_GAP_MIN minutes before the episode's current start. Message and
patient name are taken from the newest alert of the episode.

Time labels:
    single alert  -> "14:03:27"
    episode       -> "14:01 - 14:05 (5 min)"   (duration rounded, +1 inclusive)
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from vitaltrack.config.settings import EPISODE_GAP_MIN
from vitaltrack.storage.records import AlertRecord
from .classifier import Tier

UNKNOWN_PATIENT = "Unknown"


@dataclass(frozen=True)
class Episode:
    tier: Tier
    message: str
    entity_name: str
    start_time: datetime
    end_time: datetime

    @property
    def time_label(self) -> str:
        if self.start_time == self.end_time:
            return self.start_time.strftime("%H:%M:%S")
        minutes = (self.end_time - self.start_time).total_seconds() / 60
        return (f"{self.start_time:%H:%M} - {self.end_time:%H:%M} "
                f"({round(minutes + 1)} min)")

    def to_dict(self) -> dict:
        return {
            "severity": self.tier.value,
            "message": self.message,
            "patientName": self.entity_name,
            "time": self.time_label,
        }


def group_alerts(raw_alerts: Sequence[AlertRecord],
                 names: Optional[Dict[int, str]] = None,
                 gap_min: float = EPISODE_GAP_MIN) -> List[Episode]:
    """
    Group newest-first alert records into newest-first episodes.

    Args:
        raw_alerts: Alert records ordered most recent first
        names: patient_id -> display name
        gap_min: Max gap (minutes, exclusive) between neighbouring alerts
    """
    names = names or {}
    episodes = []
    if not raw_alerts:
        return episodes

    def finalize(anchor: AlertRecord, start: datetime, end: datetime):
        episodes.append(Episode(
            tier=anchor.tier,
            message=anchor.message,
            entity_name=names.get(anchor.entity_id, UNKNOWN_PATIENT),
            start_time=start,
            end_time=end,
        ))

    anchor = raw_alerts[0]
    end_time = start_time = anchor.timestamp

    for alert in raw_alerts[1:]:
        gap = (start_time - alert.timestamp).total_seconds() / 60
        same_episode = (
            alert.entity_id == anchor.entity_id
            and alert.tier == anchor.tier
            and gap < gap_min
        )
        if same_episode:
            start_time = alert.timestamp
        else:
            finalize(anchor, start_time, end_time)
            anchor = alert
            end_time = start_time = alert.timestamp

    finalize(anchor, start_time, end_time)
    return episodes
