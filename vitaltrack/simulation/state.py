"""
Patient Simulation State
=========================
Per-patient mutable record plus the rule that advances it one tick.

The scheduler calls advance() on every loop iteration, but physiology only
changes on a "slow tick" (every SLOW_TICK_SEC). Faster calls are no-ops, so
the waveform channel can run a tight loop while vitals move at a human pace.

Slow tick rule, in order:
1. counter += 1
2. every FORCED_ABNORMAL_EVERY-th slow tick: HR forced into 130-159
3. previous tier abnormal: 70% chance HR snaps back to 75, else hold
4. previous tier normal: HR random walk of -1/0/+1, clamped to 60-100
5. SpO2 and temperature follow HR (HR > 110 -> hypoxic + fever)
6. pregnant patients: fetal rate random walk around 140
"""

import random
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from vitaltrack.alerts.classifier import Tier
from vitaltrack.config.settings import (
    BASELINE_FETAL_RATE,
    BASELINE_HEART_RATE,
    BASELINE_SPO2,
    BASELINE_TEMP,
    ELEVATED_HR_ABOVE,
    FETAL_RATE_MAX,
    FETAL_RATE_MIN,
    FEVER_TEMP,
    FORCED_ABNORMAL_EVERY,
    FORCED_HR_MAX,
    FORCED_HR_MIN,
    HEALTHY_SPO2_MAX,
    HEALTHY_SPO2_MIN,
    HEALTHY_TEMP_SPREAD,
    HYPOXIC_SPO2_MAX,
    HYPOXIC_SPO2_MIN,
    RECOVERY_PROBABILITY,
    RESTING_HR_MAX,
    RESTING_HR_MIN,
    SLOW_TICK_SEC,
)


def _clamp(value, low, high):
    return max(low, min(high, value))


@dataclass
class PatientState:
    """Evolving vitals of one simulated patient. Owned by the scheduler."""

    heart_rate: int = BASELINE_HEART_RATE
    oxygen: int = BASELINE_SPO2
    temperature: float = BASELINE_TEMP
    fetal_rate: Optional[int] = None

    counter: int = 0
    last_tier: Tier = Tier.NORMAL

    # Timers (None = never happened)
    last_persist_time: Optional[datetime] = None
    last_broadcast_time: Optional[datetime] = None
    last_sim_time: Optional[datetime] = None

    @classmethod
    def initial(cls, is_special_case: bool = False) -> "PatientState":
        """Fresh baseline state for a patient seen for the first time."""
        return cls(fetal_rate=BASELINE_FETAL_RATE if is_special_case else None)

    def is_slow_tick_due(self, now: datetime) -> bool:
        if self.last_sim_time is None:
            return True
        return (now - self.last_sim_time).total_seconds() >= SLOW_TICK_SEC


def advance(state: PatientState, is_special_case: bool,
            rng: random.Random, now: datetime) -> PatientState:
    """
    Advance one patient by one scheduler tick (mutates and returns state).

    Args:
        state: The patient's simulation state
        is_special_case: Directory flag (pregnant -> fetal rate simulated)
        rng: Injected random source
        now: Current wall-clock time
    """
    # Directory flag can change between ticks
    if not is_special_case:
        state.fetal_rate = None
    elif state.fetal_rate is None:
        state.fetal_rate = BASELINE_FETAL_RATE

    if not state.is_slow_tick_due(now):
        return state

    state.counter += 1
    state.last_sim_time = now

    # Heart rate
    force_abnormal = state.counter % FORCED_ABNORMAL_EVERY == 0
    if force_abnormal:
        state.heart_rate = rng.randint(FORCED_HR_MIN, FORCED_HR_MAX)
    elif state.last_tier is not Tier.NORMAL:
        if rng.random() < RECOVERY_PROBABILITY:
            state.heart_rate = BASELINE_HEART_RATE
    else:
        drift = rng.randint(-1, 1)
        state.heart_rate = _clamp(state.heart_rate + drift, RESTING_HR_MIN, RESTING_HR_MAX)

    # SpO2 and temperature track HR
    if state.heart_rate > ELEVATED_HR_ABOVE:
        state.oxygen = rng.randint(HYPOXIC_SPO2_MIN, HYPOXIC_SPO2_MAX)
        state.temperature = FEVER_TEMP
    else:
        state.oxygen = _clamp(state.oxygen + rng.randint(-1, 1),
                              HEALTHY_SPO2_MIN, HEALTHY_SPO2_MAX)
        state.temperature = BASELINE_TEMP + rng.random() * HEALTHY_TEMP_SPREAD

    # Fetal heart rate
    if is_special_case:
        state.fetal_rate = _clamp(state.fetal_rate + rng.randint(-1, 1),
                                  FETAL_RATE_MIN, FETAL_RATE_MAX)

    return state
