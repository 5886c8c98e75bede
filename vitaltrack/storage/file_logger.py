"""
Record Mirror
==============
Append-only JSONL copy of every batch the record store accepts.

Each flushed batch is queued as one unit and written by a background thread.
Lines go to records_<YYYY-MM-DD_HH>.jsonl chosen by the record's own
timestamp, so a batch that straddles an hour is split across two files.
"""

import json
import os
import threading
import logging
from itertools import groupby
from queue import Queue, Empty, Full
from typing import Dict, List, Optional, Sequence, Tuple

from .records import AlertRecord, VitalRecord

logger = logging.getLogger("FileLogger")

# (hour key, json line)
Line = Tuple[str, str]


def record_lines(alerts: Sequence[AlertRecord], vitals: Sequence[VitalRecord]) -> List[Line]:
    """Alerts first, then vitals, each tagged with the hour file it belongs in."""
    return [(r.timestamp.strftime("%Y-%m-%d_%H"), json.dumps(r.to_dict()))
            for r in [*alerts, *vitals]]


class FileLogger:
    """
    Background JSONL mirror of persisted record batches
    A full queue sheds its oldest batch
    """

    def __init__(self, log_dir: str = "./data_logs", max_batches: int = 1000):
        self.log_dir = log_dir
        os.makedirs(log_dir, exist_ok=True)

        self.batches: Queue = Queue(maxsize=max_batches)

        self.running = False
        self.thread: Optional[threading.Thread] = None

        self._handle = None
        self._handle_hour: Optional[str] = None

        self.total_written = 0
        self.batches_written = 0
        self.dropped = 0     # records, not batches
        self.write_errors = 0

    def start(self):
        if self.running:
            logger.warning("Already running")
            return
        self.running = True
        self.thread = threading.Thread(target=self._write_loop, daemon=True)
        self.thread.start()
        logger.info(f"Mirroring records to {self.log_dir}")

    def stop(self, timeout: float = 3.0):
        """Stop the writer; queued batches are written once it has exited."""
        self.running = False
        if self.thread:
            self.thread.join(timeout=timeout)
            if self.thread.is_alive():
                logger.warning(f"Writer still busy after {timeout}s, "
                               f"leaving {self.batches.qsize()} batches unwritten")
                return
            self.thread = None
        self._drain()
        self._close()
        logger.info(f"Stopped ({self.total_written} records mirrored)")

    def log_batch(self, alerts: Sequence[AlertRecord], vitals: Sequence[VitalRecord]):
        """Queue one persisted batch. Never blocks the caller."""
        lines = record_lines(alerts, vitals)
        if not lines:
            return
        while True:
            try:
                self.batches.put_nowait(lines)
                return
            except Full:
                try:
                    shed = self.batches.get_nowait()
                except Empty:
                    continue
                self.dropped += len(shed)
                logger.warning(f"Mirror queue full, dropped {len(shed)} records")

    def _write_loop(self):
        while self.running:
            try:
                lines = self.batches.get(timeout=0.5)
            except Empty:
                continue
            self._write_batch(lines)

    def _drain(self):
        while True:
            try:
                lines = self.batches.get_nowait()
            except Empty:
                return
            self._write_batch(lines)

    def _write_batch(self, lines: List[Line]):
        try:
            for hour, group in groupby(lines, key=lambda line: line[0]):
                handle = self._file_for(hour)
                handle.writelines(text + '\n' for _, text in group)
                handle.flush()
        except OSError as e:
            self.write_errors += 1
            logger.error(f"Mirror write failed: {e}")
            return
        self.total_written += len(lines)
        self.batches_written += 1

    def _file_for(self, hour: str):
        if hour != self._handle_hour:
            self._close()
            path = os.path.join(self.log_dir, f"records_{hour}.jsonl")
            self._handle = open(path, 'a')
            self._handle_hour = hour
            logger.info(f"Writing {path}")
        return self._handle

    def _close(self):
        if self._handle:
            self._handle.close()
            self._handle = None
            self._handle_hour = None

    def get_stats(self) -> Dict:
        return {
            'total_written': self.total_written,
            'batches_written': self.batches_written,
            'queued_batches': self.batches.qsize(),
            'dropped': self.dropped,
            'write_errors': self.write_errors,
            'current_file': self._handle_hour,
        }
