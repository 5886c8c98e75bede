"""
VitalTrack Global Configuration
================================
Central configuration for classifier thresholds, simulation bands,
scheduler cadences and server parameters.

Deployment overrides are read from VITALTRACK_* environment variables
(a local .env file is loaded first).
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    return float(os.environ.get(name, default))


def _env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, default))


# --- Severity Thresholds ---
# Critical is checked first; first match wins.
CRITICAL_HR_ABOVE = 120
CRITICAL_SPO2_BELOW = 90
CRITICAL_TEMP_ABOVE = 38.0
WARNING_HR_ABOVE = 100
WARNING_SPO2_BELOW = 95

# --- Simulation Baselines ---
BASELINE_HEART_RATE = 75
BASELINE_SPO2 = 98
BASELINE_TEMP = 36.5
BASELINE_FETAL_RATE = 140

# --- Simulation Bands ---
RESTING_HR_MIN = 60
RESTING_HR_MAX = 100
FORCED_HR_MIN = 130
FORCED_HR_MAX = 159          # inclusive
ELEVATED_HR_ABOVE = 110      # above this, SpO2 and temperature go abnormal
HYPOXIC_SPO2_MIN = 85
HYPOXIC_SPO2_MAX = 93        # inclusive
HEALTHY_SPO2_MIN = 95
HEALTHY_SPO2_MAX = 100
FEVER_TEMP = 38.5
HEALTHY_TEMP_SPREAD = 0.2
FETAL_RATE_MIN = 110
FETAL_RATE_MAX = 160
RECOVERY_PROBABILITY = 0.7
FORCED_ABNORMAL_EVERY = 60   # slow ticks

# --- Scheduler Cadence ---
TICK_INTERVAL_SEC = _env_float("VITALTRACK_TICK_SEC", 0.2)
SLOW_TICK_SEC = 1.5
BROADCAST_THROTTLE_SEC = 1.0
ALERT_RECORD_INTERVAL_SEC = 60.0

# --- Persistence ---
DB_FLUSH_INTERVAL_SEC = _env_float("VITALTRACK_FLUSH_SEC", 60.0)
MAX_STORED_RECORDS = 50000
FILE_LOG_DIR = os.environ.get("VITALTRACK_LOG_DIR", "")  # empty = no JSONL mirror

# --- Alert Log ---
ALERT_QUERY_LIMIT = 100
EPISODE_GAP_MIN = 1.5

# --- Fan-Out Channels ---
WAVEFORM_EVENT = "waveform-update"
DASHBOARD_EVENT = "dashboard-update"
GROUP_PREFIX = "patient-"

# --- API / Server ---
API_HOST = os.environ.get("VITALTRACK_HOST", "0.0.0.0")
API_PORT = _env_int("VITALTRACK_PORT", 8000)
WARD_SIZE = _env_int("VITALTRACK_WARD_SIZE", 8)
