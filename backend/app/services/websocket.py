"""
Dashboard push channel.

Connected clients get a JSON event whenever a repository record changes:
{"type": "repository_updated", "payload": {...}}
"""
import json
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self):
        self.active_connections: list[WebSocket] = []

    @property
    def connection_count(self) -> int:
        return len(self.active_connections)

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.debug(f"Dashboard client connected ({self.connection_count} active)")

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

    async def broadcast(self, event_type: str, payload: Any):
        """Send an event to every client, dropping the ones that fail."""
        # Timestamps and UUIDs are sent as their string form
        message = json.dumps({"type": event_type, "payload": payload}, default=str)
        stale = []
        for connection in list(self.active_connections):
            try:
                await connection.send_text(message)
            except Exception as e:
                logger.debug(f"Dropping dashboard client after send failure: {e}")
                stale.append(connection)

        for connection in stale:
            self.disconnect(connection)

    async def send_repository_created(self, repository_data: dict):
        await self.broadcast("repository_created", repository_data)

    async def send_repository_updated(self, repository_data: dict):
        await self.broadcast("repository_updated", repository_data)

    async def send_repository_deleted(self, repository_id: str):
        await self.broadcast("repository_deleted", {"id": repository_id})


manager = ConnectionManager()
