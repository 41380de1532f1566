import asyncio
import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from fastapi import WebSocket

logger = logging.getLogger(__name__)


def tournament_group(tournament_id: str) -> str:
    return f"tournament_{tournament_id}"


class ConnectionManager:
    """
    WebSocket connections grouped per tournament.

    Each connection remembers the event loop it was accepted on, so a
    broadcast started from a worker thread (the sync engine) can hand the
    send to that loop and return without waiting for delivery.

    The group map is shared by the loop thread and worker threads and is
    guarded by a lock that is never held across a send.
    """

    def __init__(self):
        self.active_connections: Dict[str, List[Tuple[WebSocket, asyncio.AbstractEventLoop]]] = {}
        self._lock = threading.Lock()

    async def connect(self, websocket: WebSocket, tournament_id: str):
        """Accepts a websocket and joins it to the tournament's group

        Args:
            websocket (WebSocket): incoming viewer connection
            tournament_id (str): tournament to receive updates for
        """
        await websocket.accept()
        group = tournament_group(tournament_id)
        with self._lock:
            connections = self.active_connections.setdefault(group, [])
            connections.append((websocket, asyncio.get_running_loop()))
            count = len(connections)
        logger.info(f"Viewer joined {group} ({count} connected)")

    def disconnect(self, websocket: WebSocket, tournament_id: str):
        """Removes a websocket from the tournament's group

        Args:
            websocket (WebSocket): connection to drop
            tournament_id (str): tournament the connection joined
        """
        group = tournament_group(tournament_id)
        with self._lock:
            connections = self.active_connections.get(group)
            if not connections:
                return
            remaining = [c for c in connections if c[0] is not websocket]
            # Clean up if there are no more connections for this tournament
            if remaining:
                self.active_connections[group] = remaining
            else:
                self.active_connections.pop(group, None)

    def connection_count(self, tournament_id: str) -> int:
        with self._lock:
            return len(self.active_connections.get(tournament_group(tournament_id), []))

    def broadcast_threadsafe(self, message: Dict[str, Any], tournament_id: str) -> int:
        """Schedule ``message`` to every connection in the group; does not wait.

        Returns:
            int: number of sends scheduled
        """
        group = tournament_group(tournament_id)
        with self._lock:
            connections = list(self.active_connections.get(group, []))
        for websocket, loop in connections:
            if loop.is_closed():
                self.disconnect(websocket, tournament_id)
                continue
            future = asyncio.run_coroutine_threadsafe(websocket.send_json(message), loop)
            future.add_done_callback(self._make_delivery_callback(websocket, tournament_id))
        return len(connections)

    def _make_delivery_callback(self, websocket: WebSocket, tournament_id: str):
        def _on_done(future):
            if future.cancelled():
                return
            exc = future.exception()
            if exc is not None:
                logger.warning(f"Dropping viewer from {tournament_group(tournament_id)} after failed send: {exc}")
                self.disconnect(websocket, tournament_id)

        return _on_done


# Singleton instance
_connection_manager: Optional[ConnectionManager] = None
_connection_manager_lock = threading.Lock()


def get_connection_manager() -> ConnectionManager:
    """Get or create the singleton ConnectionManager instance."""
    global _connection_manager
    with _connection_manager_lock:
        if _connection_manager is None:
            _connection_manager = ConnectionManager()
    return _connection_manager
