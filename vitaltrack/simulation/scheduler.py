"""
Simulation Scheduler
=====================
The background loop that drives everything in real time.

Each tick:
1. Snapshot the patient directory (read failure -> no patients this tick)
2. Per patient: advance state, classify
3. Waveform payload to the patient's group (every tick)
4. Dashboard payload to everyone (throttled, abnormal bypasses throttle)
5. Offer alert + vital records to the write-behind buffer when eligible
6. Remember the tier for transition detection

A failure for one patient is logged and the loop moves on. The loop only
ends on stop() (observed between ticks) or task cancellation.

Patient state is created on first sight and kept for the process lifetime;
patients that leave the directory are simply no longer touched.
"""

import asyncio
import logging
import random
from datetime import datetime
from typing import Callable, Dict, List, Optional

from vitaltrack.alerts.classifier import classify
from vitaltrack.config.settings import TICK_INTERVAL_SEC
from vitaltrack.storage.records import AlertRecord, DirectoryEntry, VitalRecord, VitalsSnapshot
from vitaltrack.storage.write_buffer import WriteBehindBuffer, should_record_alert
from .state import PatientState, advance

logger = logging.getLogger("Scheduler")


class VitalScheduler:
    """
    Owns all PatientState and runs the simulate -> classify -> fan-out ->
    buffer pipeline once per tick.
    """

    def __init__(self, directory, fanout, buffer: WriteBehindBuffer,
                 rng: Optional[random.Random] = None,
                 clock: Callable[[], datetime] = datetime.now,
                 tick_interval: float = TICK_INTERVAL_SEC):
        """
        Args:
            directory: Object with list_entities() -> [DirectoryEntry]
            fanout: Object with async publish(snapshot, state, now)
            buffer: Write-behind buffer receiving eligible records
            rng: Random source (seed it for reproducible runs)
            clock: Returns the current time
            tick_interval: Seconds between ticks
        """
        self.directory = directory
        self.fanout = fanout
        self.buffer = buffer
        self.rng = rng or random.Random()
        self.clock = clock
        self.tick_interval = tick_interval

        self.states: Dict[int, PatientState] = {}

        # Control
        self.running = False
        self._stop_event: Optional[asyncio.Event] = None

        # Stats
        self.ticks = 0
        self.entity_errors = 0
        self.directory_errors = 0
        self.alerts_offered = 0

    def _snapshot_directory(self) -> List[DirectoryEntry]:
        try:
            return list(self.directory.list_entities())
        except Exception as e:
            self.directory_errors += 1
            logger.error(f"Directory read failed, skipping tick: {e}")
            return []

    def state_for(self, entry: DirectoryEntry) -> PatientState:
        state = self.states.get(entry.id)
        if state is None:
            state = PatientState.initial(entry.is_special_case)
            self.states[entry.id] = state
            logger.info(f"New patient: {entry.id} (special_case={entry.is_special_case})")
        return state

    async def tick(self) -> int:
        """Run one iteration over the directory. Returns patients processed."""
        now = self.clock()
        processed = 0
        for entry in self._snapshot_directory():
            try:
                await self._tick_entity(entry, now)
                processed += 1
            except Exception as e:
                self.entity_errors += 1
                logger.exception(f"Tick failed for patient {entry.id}: {e}")
        self.ticks += 1
        return processed

    async def _tick_entity(self, entry: DirectoryEntry, now: datetime):
        state = self.state_for(entry)
        advance(state, entry.is_special_case, self.rng, now)
        tier = classify(state.heart_rate, state.oxygen, state.temperature)

        snapshot = VitalsSnapshot(
            entity_id=entry.id,
            heart_rate=state.heart_rate,
            oxygen=state.oxygen,
            temperature=state.temperature,
            fetal_rate=state.fetal_rate,
            tier=tier,
            timestamp=now,
        )

        # Delivery problems never block persistence or the tier update
        try:
            await self.fanout.publish(snapshot, state, now)
        except Exception as e:
            logger.error(f"Fan-out failed for patient {entry.id}: {e}")

        if should_record_alert(tier, state.last_tier, state.last_persist_time, now):
            self.buffer.offer_alert(AlertRecord.from_snapshot(snapshot))
            self.buffer.offer_vital(VitalRecord.from_snapshot(snapshot))
            state.last_persist_time = now
            self.alerts_offered += 1
            logger.info(f"[ALERT] {entry.id} | {tier.value.upper()} | "
                        f"HR:{state.heart_rate} SpO2:{state.oxygen} T:{state.temperature:.1f}")

        state.last_tier = tier

    async def run(self):
        """Tick until stop() is called or the task is cancelled."""
        self.running = True
        self._stop_event = asyncio.Event()
        logger.info(f"Scheduler started (tick={self.tick_interval:.2f}s)")
        try:
            while self.running:
                await self.tick()
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self.tick_interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            self.running = False
            logger.info(f"Scheduler stopped after {self.ticks} ticks")

    def stop(self):
        self.running = False
        if self._stop_event is not None:
            self._stop_event.set()

    def get_stats(self) -> Dict:
        return {
            'running': self.running,
            'ticks': self.ticks,
            'patients_tracked': len(self.states),
            'entity_errors': self.entity_errors,
            'directory_errors': self.directory_errors,
            'alerts_offered': self.alerts_offered,
        }
