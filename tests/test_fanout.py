import asyncio
from datetime import timedelta

from conftest import FakeSocket

from vitaltrack.alerts.classifier import Tier
from vitaltrack.api.fanout import FanOut
from vitaltrack.api.payloads import DashboardUpdate, WaveformUpdate
from vitaltrack.api.ws_handler import ConnectionManager, group_name
from vitaltrack.simulation.state import PatientState
from vitaltrack.storage.records import VitalsSnapshot


def snapshot(clock, entity=1, hr=75, ox=98, temp=36.62, fetal=None, tier=Tier.NORMAL):
    return VitalsSnapshot(entity, hr, ox, temp, fetal, tier, clock())


# --- Connection manager ---

def test_connect_accepts_and_registers():
    hub = ConnectionManager()
    ws = FakeSocket()
    asyncio.run(hub.connect(ws))
    assert ws.accepted
    assert hub.client_count == 1


def test_join_and_leave_are_idempotent():
    hub = ConnectionManager()
    ws = FakeSocket()
    assert hub.join(ws, 3)
    assert hub.join(ws, "3")
    assert hub.group_members(3) == {ws}
    assert hub.leave(ws, 3)
    assert hub.leave(ws, 3)
    assert hub.group_members(3) == set()
    assert group_name(3) not in hub.groups


def test_bad_group_ids_are_swallowed():
    hub = ConnectionManager()
    ws = FakeSocket()
    assert hub.join(ws, "not-a-number") is False
    assert hub.join(ws, None) is False
    assert hub.leave(ws, {}) is False
    assert hub.groups == {}


def test_disconnect_removes_from_all_groups():
    hub = ConnectionManager()
    ws = FakeSocket()
    hub.register(ws)
    hub.join(ws, 1)
    hub.join(ws, 2)
    hub.disconnect(ws)
    assert hub.client_count == 0
    assert hub.groups == {}


def test_group_send_reaches_members_only():
    hub = ConnectionManager()
    watcher, other = FakeSocket("watcher"), FakeSocket("other")
    hub.register(watcher)
    hub.register(other)
    hub.join(watcher, 1)
    delivered = asyncio.run(hub.send_to_group(1, "waveform-update", {"entityId": 1}))
    assert delivered == 1
    assert watcher.sent == [{"type": "waveform-update", "data": {"entityId": 1}}]
    assert other.sent == []


def test_failing_client_is_dropped_and_others_still_receive():
    hub = ConnectionManager()
    sockets = [FakeSocket("a"), FakeSocket("dead", fail=True), FakeSocket("c")]
    for ws in sockets:
        hub.register(ws)
        hub.join(ws, 1)
    delivered = asyncio.run(hub.broadcast("dashboard-update", {"entityId": 1}))
    assert delivered == 2
    assert hub.client_count == 2
    assert hub.group_members(1) == {sockets[0], sockets[2]}
    assert hub.failed_sends == 1


# --- Payloads ---

def test_waveform_payload_wire_names(clock):
    wire = WaveformUpdate.from_snapshot(snapshot(clock, fetal=141)).to_wire()
    assert wire == {"entityId": 1, "heartRate": 75, "oxygen": 98, "temperature": 36.6,
                    "fetalRate": 141, "tier": "Normal"}


def test_dashboard_payload_wire_names(clock):
    wire = DashboardUpdate.from_snapshot(snapshot(clock, tier=Tier.WARNING, hr=105)).to_wire()
    assert wire == {"entityId": 1, "tier": "Warning", "heartRate": 105, "oxygen": 98,
                    "temperature": 36.6}


def test_waveform_payload_keeps_null_fetal_rate(clock):
    wire = WaveformUpdate.from_snapshot(snapshot(clock)).to_wire()
    assert wire["fetalRate"] is None


# --- Fan-out throttling ---

def test_waveform_every_tick_dashboard_throttled(clock):
    hub = ConnectionManager()
    ws = FakeSocket()
    hub.register(ws)
    hub.join(ws, 1)
    fanout = FanOut(hub)
    state = PatientState.initial()

    async def go():
        for _ in range(10):  # 2 seconds of 200ms ticks
            await fanout.publish(snapshot(clock), state, clock())
            clock.advance(0.2)
    asyncio.run(go())

    assert len(ws.events("waveform-update")) == 10
    # t=0.0 and t=1.0
    assert len(ws.events("dashboard-update")) == 2


def test_abnormal_tiers_bypass_dashboard_throttle(clock):
    hub = ConnectionManager()
    ws = FakeSocket()
    hub.register(ws)
    fanout = FanOut(hub)
    state = PatientState.initial()

    async def go():
        for tier in (Tier.NORMAL, Tier.WARNING, Tier.CRITICAL, Tier.CRITICAL, Tier.NORMAL):
            await fanout.publish(snapshot(clock, tier=tier), state, clock())
            clock.advance(0.2)
    asyncio.run(go())

    tiers = [d["tier"] for d in ws.events("dashboard-update")]
    assert tiers == ["Normal", "Warning", "Critical", "Critical"]
    assert state.last_broadcast_time == clock.now - timedelta(seconds=0.4)
