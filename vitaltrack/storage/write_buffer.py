import threading
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from vitaltrack.alerts.classifier import Tier
from vitaltrack.config.settings import ALERT_RECORD_INTERVAL_SEC, DB_FLUSH_INTERVAL_SEC
from .records import AlertRecord, VitalRecord

logger = logging.getLogger("WriteBuffer")


def should_record_alert(tier: Tier, last_tier: Tier,
                        last_persist_time: Optional[datetime],
                        now: datetime) -> bool:
    """
    Decide whether an abnormal reading becomes a persisted alert.

    Every tier transition is recorded; a sustained abnormal state is
    recorded at most once per ALERT_RECORD_INTERVAL_SEC.
    """
    if not tier.is_abnormal:
        return False
    if tier != last_tier:
        return True
    if last_persist_time is None:
        return True
    return (now - last_persist_time).total_seconds() >= ALERT_RECORD_INTERVAL_SEC


class WriteBehindBuffer:
    """
    In-memory staging area for alert and vital records.

    Appends come from the scheduler; flush() may run from another thread.
    The hand-off (take pending -> clear) happens under one lock, and records
    are handed back if the sink write fails.
    """

    def __init__(self):
        self.pending_alerts: List[AlertRecord] = []
        self.pending_vitals: List[VitalRecord] = []
        self.lock = threading.Lock()
        self.flush_lock = threading.Lock()

        # Stats
        self.total_offered = 0
        self.total_flushed = 0
        self.failed_flushes = 0

    def offer_alert(self, record: AlertRecord):
        with self.lock:
            self.pending_alerts.append(record)
            self.total_offered += 1

    def offer_vital(self, record: VitalRecord):
        with self.lock:
            self.pending_vitals.append(record)
            self.total_offered += 1

    def _take(self) -> Tuple[List[AlertRecord], List[VitalRecord]]:
        with self.lock:
            alerts, self.pending_alerts = self.pending_alerts, []
            vitals, self.pending_vitals = self.pending_vitals, []
        return alerts, vitals

    def _restore(self, alerts: List[AlertRecord], vitals: List[VitalRecord]):
        with self.lock:
            self.pending_alerts = alerts + self.pending_alerts
            self.pending_vitals = vitals + self.pending_vitals

    def flush(self, sink) -> int:
        """
        Hand all pending records to sink.append_batch(alerts, vitals).

        Returns the number of records written (0 for an empty buffer).
        Sink errors propagate after the records have been put back.
        """
        # One flush at a time, so a retry never races a slow write
        with self.flush_lock:
            alerts, vitals = self._take()
            if not alerts and not vitals:
                return 0
            try:
                sink.append_batch(alerts, vitals)
            except Exception:
                self._restore(alerts, vitals)
                self.failed_flushes += 1
                raise
            written = len(alerts) + len(vitals)
            self.total_flushed += written
            return written

    def pending_count(self) -> int:
        with self.lock:
            return len(self.pending_alerts) + len(self.pending_vitals)

    def get_stats(self) -> Dict:
        with self.lock:
            return {
                'pending_alerts': len(self.pending_alerts),
                'pending_vitals': len(self.pending_vitals),
                'total_offered': self.total_offered,
                'total_flushed': self.total_flushed,
                'failed_flushes': self.failed_flushes,
            }


class BufferFlusher:
    """
    Background thread that flushes a WriteBehindBuffer on a fixed interval,
    independent of how many records are pending.
    """

    def __init__(self, buffer: WriteBehindBuffer, sink,
                 interval_sec: float = DB_FLUSH_INTERVAL_SEC):
        self.buffer = buffer
        self.sink = sink
        self.interval_sec = interval_sec

        # Control
        self.running = False
        self.thread = None
        self._stop_event = threading.Event()

    def start(self):
        """Start periodic flushing"""
        if self.running:
            logger.warning("Flusher already running")
            return

        self.running = True
        self._stop_event.clear()
        self.thread = threading.Thread(target=self._flush_loop, daemon=True)
        self.thread.start()
        logger.info(f"Started flusher (every {self.interval_sec:.0f}s)")

    def stop(self, final_flush: bool = True):
        """Stop flushing, optionally draining whatever is still buffered"""
        self.running = False
        self._stop_event.set()
        if self.thread:
            self.thread.join(timeout=3)
        if final_flush:
            self.flush_once()
        logger.info("Stopped")

    def flush_once(self) -> int:
        """One flush attempt. Failures are logged; records stay buffered."""
        try:
            written = self.buffer.flush(self.sink)
        except Exception as e:
            logger.error(f"Flush failed, will retry next interval: {e}")
            return 0
        if written:
            logger.info(f"Flushed {written} records")
        return written

    def _flush_loop(self):
        """Background thread - one flush attempt per interval"""
        while not self._stop_event.wait(self.interval_sec):
            self.flush_once()
