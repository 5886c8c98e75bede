"""
Error types shared across VitalTrack components.
"""


class VitalTrackError(Exception):
    """Base class for VitalTrack errors."""


class StoreUnavailableError(VitalTrackError):
    """The record store rejected a read or write (outage, shutdown)."""
