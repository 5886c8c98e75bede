"""
API Routes
===========
REST endpoints for the patient listing, the grouped alert log and system
status.
"""

import logging

from fastapi import APIRouter

from vitaltrack.alerts.episodes import group_alerts
from vitaltrack.config.settings import ALERT_QUERY_LIMIT

logger = logging.getLogger("Routes")

router = APIRouter()

# Populated by server.py with references to the running components
_app_state = {}


def set_app_state(state: dict):
    """Called by server.py to share store/scheduler/hub with routes."""
    global _app_state
    _app_state = state


@router.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "VitalTrack API"}


@router.get("/dashboard/patients")
async def get_patients():
    """All patients with nested medications, conditions and surgeries."""
    store = _app_state.get("store")
    if not store:
        return []
    try:
        return store.list_patients()
    except Exception as e:
        logger.error(f"Patient listing failed: {e}")
        return {"error": "Patient store unavailable"}


@router.get("/dashboard/alerts")
async def get_alerts():
    """Recent alerts grouped into episodes, newest first."""
    store = _app_state.get("store")
    if not store:
        return []
    try:
        raw = store.recent_alerts(ALERT_QUERY_LIMIT)
    except Exception as e:
        logger.error(f"Alert query failed: {e}")
        return {"error": "Alert store unavailable"}
    episodes = group_alerts(raw, store.patient_names())
    return [e.to_dict() for e in episodes]


@router.get("/status")
async def get_system_status():
    """Scheduler, buffer, store and hub statistics."""
    scheduler = _app_state.get("scheduler")
    buffer = _app_state.get("buffer")
    store = _app_state.get("store")
    hub = _app_state.get("ws_manager")
    return {
        "status": "running" if scheduler and scheduler.running else "stopped",
        "scheduler": scheduler.get_stats() if scheduler else {},
        "buffer": buffer.get_stats() if buffer else {},
        "store": store.get_stats() if store else {},
        "ws_clients": hub.client_count if hub else 0,
    }
