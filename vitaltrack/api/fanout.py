"""
Dual-Channel Fan-Out
=====================
Publishes each vitals snapshot on two channels:

- waveform-update:  every tick, patient group only, no throttle
- dashboard-update: everyone, at most once per BROADCAST_THROTTLE_SEC per
                    patient, except Warning/Critical which always go out
"""

from datetime import datetime

from vitaltrack.config.settings import BROADCAST_THROTTLE_SEC, DASHBOARD_EVENT, WAVEFORM_EVENT
from vitaltrack.simulation.state import PatientState
from vitaltrack.storage.records import VitalsSnapshot
from .payloads import DashboardUpdate, WaveformUpdate
from .ws_handler import ConnectionManager


def dashboard_due(state: PatientState, snapshot: VitalsSnapshot, now: datetime) -> bool:
    if snapshot.tier.is_abnormal:
        return True
    if state.last_broadcast_time is None:
        return True
    return (now - state.last_broadcast_time).total_seconds() >= BROADCAST_THROTTLE_SEC


class FanOut:
    """Sends snapshots to the hub; updates the patient's broadcast timer."""

    def __init__(self, hub: ConnectionManager):
        self.hub = hub
        self.waveforms_sent = 0
        self.dashboards_sent = 0

    async def publish(self, snapshot: VitalsSnapshot, state: PatientState, now: datetime) -> bool:
        """Publish one snapshot. Returns True if the dashboard channel fired."""
        await self.hub.send_to_group(snapshot.entity_id, WAVEFORM_EVENT,
                                     WaveformUpdate.from_snapshot(snapshot).to_wire())
        self.waveforms_sent += 1

        if not dashboard_due(state, snapshot, now):
            return False
        await self.hub.broadcast(DASHBOARD_EVENT, DashboardUpdate.from_snapshot(snapshot).to_wire())
        state.last_broadcast_time = now
        self.dashboards_sent += 1
        return True
