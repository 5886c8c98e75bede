"""
WebSocket Handler
==================
Manages WebSocket connections and per-patient subscription groups.

Two delivery modes:
- send_to_group(): only connections that joined a patient's group
- broadcast():     every connected client

Membership changes arrive from many connection handlers while the scheduler
is sending, so all membership access goes through one lock and senders work
on a copy.
"""

import json
import logging
import threading
from typing import Dict, Set

from fastapi import WebSocket

from vitaltrack.config.settings import GROUP_PREFIX

logger = logging.getLogger("ConnectionManager")


def group_name(entity_id: int) -> str:
    return f"{GROUP_PREFIX}{entity_id}"


class ConnectionManager:
    """Manages active WebSocket connections, groups and broadcasts."""

    def __init__(self):
        self.active_connections: Set[WebSocket] = set()
        self.groups: Dict[str, Set[WebSocket]] = {}
        self.lock = threading.Lock()
        self.failed_sends = 0

    async def connect(self, websocket: WebSocket):
        """Accept and register a new WebSocket connection."""
        await websocket.accept()
        self.register(websocket)

    def register(self, websocket: WebSocket):
        with self.lock:
            self.active_connections.add(websocket)

    def disconnect(self, websocket: WebSocket):
        """Remove a client from the pool and from every group."""
        with self.lock:
            self.active_connections.discard(websocket)
            for name in list(self.groups):
                members = self.groups[name]
                members.discard(websocket)
                if not members:
                    del self.groups[name]

    def join(self, websocket: WebSocket, entity_id) -> bool:
        """Subscribe a connection to one patient's waveform group. Idempotent."""
        try:
            name = group_name(int(entity_id))
            with self.lock:
                self.groups.setdefault(name, set()).add(websocket)
            return True
        except Exception as e:
            logger.warning(f"Join failed for patient {entity_id!r}: {e}")
            return False

    def leave(self, websocket: WebSocket, entity_id) -> bool:
        """Unsubscribe from one patient's group. Idempotent."""
        try:
            name = group_name(int(entity_id))
            with self.lock:
                members = self.groups.get(name)
                if members is not None:
                    members.discard(websocket)
                    if not members:
                        del self.groups[name]
            return True
        except Exception as e:
            logger.warning(f"Leave failed for patient {entity_id!r}: {e}")
            return False

    def group_members(self, entity_id: int) -> Set[WebSocket]:
        with self.lock:
            return set(self.groups.get(group_name(entity_id), ()))

    async def _send_all(self, targets, event: str, data: dict) -> int:
        """
        Send one message to every target.
        A failing client is dropped; delivery to the others continues.
        """
        text = json.dumps({"type": event, "data": data})
        delivered = 0
        dead = set()
        for ws in targets:
            try:
                await ws.send_text(text)
                delivered += 1
            except Exception as e:
                logger.debug(f"Send failed, dropping client: {e}")
                dead.add(ws)
        if dead:
            self.failed_sends += len(dead)
            for ws in dead:
                self.disconnect(ws)
        return delivered

    async def send_to_group(self, entity_id: int, event: str, data: dict) -> int:
        return await self._send_all(self.group_members(entity_id), event, data)

    async def broadcast(self, event: str, data: dict) -> int:
        with self.lock:
            targets = set(self.active_connections)
        return await self._send_all(targets, event, data)

    @property
    def client_count(self) -> int:
        with self.lock:
            return len(self.active_connections)
