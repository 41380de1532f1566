"""Real-time notification service.

Pushes race assignment changes to every viewer connected to a tournament's
WebSocket group. Delivery is best-effort: sends are scheduled onto each
connection's event loop and this service returns without waiting.

Reads configuration from environment variables:
  - NOTIFICATION_LATENCY_ALERT_MS (default 3000)
"""

import logging
import os
import time
from typing import Any, Dict, Optional

from flyball.services.assignment_types import TournamentAssignments
from flyball.services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)

RACE_ASSIGNMENT_UPDATED = "RaceAssignmentUpdated"
RING_CLEARED = "RingCleared"


def assignments_payload(assignments: TournamentAssignments) -> Dict[str, Any]:
    """JSON-ready snapshot in the same shape the HTTP API returns."""
    return assignments.to_dict()


class RealTimeNotificationService:
    def __init__(self, connections: ConnectionManager, latency_alert_ms: Optional[int] = None):
        self.connections = connections
        if latency_alert_ms is None:
            latency_alert_ms = int(os.getenv("NOTIFICATION_LATENCY_ALERT_MS", "3000"))
        self.latency_alert_ms = latency_alert_ms

    def notify_assignment_updated(self, tournament_id: str, assignments: TournamentAssignments) -> None:
        """Notify viewers about race assignment updates for a tournament"""
        self._send(
            tournament_id,
            {"event": RACE_ASSIGNMENT_UPDATED, "data": assignments_payload(assignments)},
            operation="RaceAssignmentUpdate",
        )

    def notify_ring_cleared(self, tournament_id: str, ring_number: int, assignments: TournamentAssignments) -> None:
        """Notify viewers that one ring's slots were cleared"""
        self._send(
            tournament_id,
            {
                "event": RING_CLEARED,
                "data": {"ringNumber": ring_number, "assignments": assignments_payload(assignments)},
            },
            operation="RingClear",
        )

    def _send(self, tournament_id: str, message: Dict[str, Any], operation: str) -> None:
        started = time.perf_counter()
        scheduled = self.connections.broadcast_threadsafe(message, tournament_id)
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            f"Notified {scheduled} viewer(s) about {message['event']} for tournament {tournament_id} "
            f"in {elapsed_ms}ms"
        )
        self.record_latency(operation, elapsed_ms)

    def record_latency(self, operation: str, milliseconds: int) -> None:
        if milliseconds > self.latency_alert_ms:
            logger.warning(
                f"PERFORMANCE ALERT: {operation} notification took {milliseconds}ms, "
                f"exceeding {self.latency_alert_ms}ms target"
            )
