import json
from datetime import datetime, timedelta

import pytest


class FakeSocket:
    """Stand-in for a FastAPI WebSocket that records what it was sent."""

    def __init__(self, name="ws", fail=False):
        self.name = name
        self.fail = fail
        self.accepted = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_text(self, text):
        if self.fail:
            raise RuntimeError(f"{self.name} disconnected")
        self.sent.append(json.loads(text))

    def events(self, kind):
        return [m["data"] for m in self.sent if m["type"] == kind]

    def __repr__(self):
        return f"FakeSocket({self.name})"


class ManualClock:
    """Clock the test moves by hand."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 3, 1, 9, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)
        return self.now


class StaticDirectory:
    def __init__(self, entries):
        self.entries = list(entries)

    def list_entities(self):
        return list(self.entries)


class ListSink:
    """Record sink with an optional number of failures before it works."""

    def __init__(self, failures=0):
        self.failures = failures
        self.alerts = []
        self.vitals = []
        self.calls = 0

    def append_batch(self, alerts, vitals):
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("store offline")
        self.alerts.extend(alerts)
        self.vitals.extend(vitals)


@pytest.fixture
def clock():
    return ManualClock()
