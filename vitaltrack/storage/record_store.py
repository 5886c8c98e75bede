from collections import deque
from typing import Dict, List, Optional, Sequence
import threading
import logging

from vitaltrack.config.patient_profiles import PatientRecord
from vitaltrack.config.settings import ALERT_QUERY_LIMIT, MAX_STORED_RECORDS
from vitaltrack.errors import StoreUnavailableError
from .file_logger import FileLogger
from .records import AlertRecord, DirectoryEntry, VitalRecord

logger = logging.getLogger("RecordStore")


class RecordStore:
    """
    In-memory patient and history store
    Holds the patient directory, alert history and vital history
    Thread-safe
    """

    def __init__(self, max_records: int = MAX_STORED_RECORDS,
                 file_logger: Optional[FileLogger] = None):
        self.max_records = max_records
        self.file_logger = file_logger

        self.patients: Dict[int, PatientRecord] = {}
        self.alert_history = deque(maxlen=max_records)
        self.vital_history = deque(maxlen=max_records)

        # Lock for thread safety
        self.lock = threading.Lock()

        # Outage switch for the history tables (operators / tests)
        self.available = True

        # Stats
        self.total_stored = 0
        self.batches_written = 0

    def _check_available(self):
        # Gates history reads and writes only; the directory stays readable
        if not self.available:
            raise StoreUnavailableError("record store is unavailable")

    def set_available(self, available: bool):
        with self.lock:
            self.available = available
        logger.warning(f"Store marked {'available' if available else 'UNAVAILABLE'}")

    # --- Patient directory ---

    def add_patient(self, patient: PatientRecord):
        with self.lock:
            self.patients[patient.patient_id] = patient

    def remove_patient(self, patient_id: int):
        with self.lock:
            self.patients.pop(patient_id, None)

    def list_entities(self) -> List[DirectoryEntry]:
        """Snapshot of the directory: id + special-case flag"""
        with self.lock:
            return [DirectoryEntry(p.patient_id, p.is_pregnant) for p in self.patients.values()]

    def list_patients(self) -> List[Dict]:
        """Patients with nested history, for the listing endpoint"""
        with self.lock:
            return [p.to_dict() for p in self.patients.values()]

    def patient_names(self) -> Dict[int, str]:
        with self.lock:
            return {pid: p.name for pid, p in self.patients.items()}

    # --- History ---

    def append_batch(self, alerts: Sequence[AlertRecord], vitals: Sequence[VitalRecord]):
        """
        Append a batch of records. All-or-nothing: either every record is
        stored or none is.
        """
        with self.lock:
            self._check_available()
            self.alert_history.extend(alerts)
            self.vital_history.extend(vitals)
            self.total_stored += len(alerts) + len(vitals)
            self.batches_written += 1

        if self.file_logger:
            self.file_logger.log_batch(alerts, vitals)

    def recent_alerts(self, limit: int = ALERT_QUERY_LIMIT) -> List[AlertRecord]:
        """Most recent alerts, newest first"""
        with self.lock:
            self._check_available()
            ordered = sorted(self.alert_history, key=lambda a: a.timestamp, reverse=True)
            return ordered[:limit]

    def vitals_for(self, patient_id: int) -> List[VitalRecord]:
        with self.lock:
            self._check_available()
            return [v for v in self.vital_history if v.entity_id == patient_id]

    def get_stats(self) -> Dict:
        """Get store statistics"""
        with self.lock:
            return {
                'available': self.available,
                'patients': len(self.patients),
                'alert_records': len(self.alert_history),
                'vital_records': len(self.vital_history),
                'total_stored': self.total_stored,
                'batches_written': self.batches_written,
                'max_records': self.max_records,
            }
