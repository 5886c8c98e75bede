from .alerts.classifier import Tier, classify
from .alerts.episodes import Episode, group_alerts
from .simulation.state import PatientState, advance
from .storage.write_buffer import WriteBehindBuffer, should_record_alert

__all__ = [
    "Tier",
    "classify",
    "Episode",
    "group_alerts",
    "PatientState",
    "advance",
    "WriteBehindBuffer",
    "should_record_alert",
]
