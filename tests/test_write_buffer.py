import threading
import time
from datetime import datetime, timedelta

import pytest
from conftest import ListSink

from vitaltrack.alerts.classifier import Tier
from vitaltrack.storage.records import AlertRecord, VitalRecord
from vitaltrack.storage.record_store import RecordStore
from vitaltrack.storage.write_buffer import BufferFlusher, WriteBehindBuffer, should_record_alert

T0 = datetime(2024, 3, 1, 9, 0, 0)


def alert(i, entity=1, tier=Tier.CRITICAL):
    return AlertRecord(entity, tier, f"alert {i}", T0 + timedelta(seconds=i))


def vital(i, entity=1):
    return VitalRecord(entity, 130, 88, 38.5, None, T0 + timedelta(seconds=i))


# --- Eligibility ---

def test_normal_readings_are_never_recorded():
    assert not should_record_alert(Tier.NORMAL, Tier.CRITICAL, None, T0)


def test_transition_is_always_recorded():
    just_now = T0 - timedelta(seconds=1)
    assert should_record_alert(Tier.WARNING, Tier.NORMAL, just_now, T0)
    assert should_record_alert(Tier.CRITICAL, Tier.WARNING, just_now, T0)
    assert should_record_alert(Tier.WARNING, Tier.CRITICAL, just_now, T0)


def test_sustained_tier_recorded_once_per_minute():
    assert not should_record_alert(Tier.CRITICAL, Tier.CRITICAL, T0 - timedelta(seconds=59), T0)
    assert should_record_alert(Tier.CRITICAL, Tier.CRITICAL, T0 - timedelta(seconds=60), T0)
    assert should_record_alert(Tier.CRITICAL, Tier.CRITICAL, None, T0)


# --- Buffer ---

def test_nothing_persisted_until_flush_then_exactly_once():
    buffer = WriteBehindBuffer()
    sink = ListSink()
    for i in range(150):
        buffer.offer_alert(alert(i))
    assert sink.alerts == []
    assert buffer.pending_count() == 150

    assert buffer.flush(sink) == 150
    assert len(sink.alerts) == 150
    assert [a.message for a in sink.alerts] == [f"alert {i}" for i in range(150)]

    assert buffer.flush(sink) == 0
    assert len(sink.alerts) == 150
    assert sink.calls == 1


def test_empty_flush_is_a_noop():
    sink = ListSink()
    assert WriteBehindBuffer().flush(sink) == 0
    assert sink.calls == 0


def test_failed_flush_keeps_records_for_retry():
    buffer = WriteBehindBuffer()
    sink = ListSink(failures=2)
    for i in range(10):
        buffer.offer_alert(alert(i))
        buffer.offer_vital(vital(i))

    for _ in range(2):
        with pytest.raises(ConnectionError):
            buffer.flush(sink)
        assert buffer.pending_count() == 20

    # Offered while the store was down
    buffer.offer_alert(alert(10))

    assert buffer.flush(sink) == 21
    assert [a.message for a in sink.alerts] == [f"alert {i}" for i in range(11)]
    assert len(sink.vitals) == 10
    assert buffer.pending_count() == 0
    assert buffer.get_stats()['failed_flushes'] == 2


def test_concurrent_offers_and_flushes_lose_nothing():
    buffer = WriteBehindBuffer()
    sink = ListSink()
    done = threading.Event()

    def producer():
        for i in range(2000):
            buffer.offer_alert(alert(i))
        done.set()

    def flusher():
        while not done.is_set():
            buffer.flush(sink)
        buffer.flush(sink)

    threads = [threading.Thread(target=producer), threading.Thread(target=flusher)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert len(sink.alerts) == 2000
    assert len({a.message for a in sink.alerts}) == 2000


# --- Flusher ---

def test_flusher_writes_on_interval_not_per_record():
    store = RecordStore()
    buffer = WriteBehindBuffer()
    flusher = BufferFlusher(buffer, store, interval_sec=0.3)
    for i in range(150):
        buffer.offer_alert(alert(i))

    flusher.start()
    try:
        assert store.get_stats()['alert_records'] == 0
        deadline = time.time() + 3
        while store.get_stats()['alert_records'] < 150 and time.time() < deadline:
            time.sleep(0.05)
    finally:
        flusher.stop()

    assert store.get_stats()['alert_records'] == 150
    assert store.get_stats()['batches_written'] == 1


def test_flusher_retries_after_outage():
    store = RecordStore()
    store.set_available(False)
    buffer = WriteBehindBuffer()
    flusher = BufferFlusher(buffer, store, interval_sec=60)
    buffer.offer_alert(alert(0))
    buffer.offer_vital(vital(0))

    assert flusher.flush_once() == 0
    assert buffer.pending_count() == 2

    store.set_available(True)
    assert flusher.flush_once() == 2
    assert store.get_stats()['total_stored'] == 2
    assert flusher.flush_once() == 0
    assert store.get_stats()['total_stored'] == 2


def test_flusher_stop_drains_buffer():
    store = RecordStore()
    buffer = WriteBehindBuffer()
    flusher = BufferFlusher(buffer, store, interval_sec=60)
    flusher.start()
    buffer.offer_alert(alert(0))
    flusher.stop(final_flush=True)
    assert store.get_stats()['alert_records'] == 1
