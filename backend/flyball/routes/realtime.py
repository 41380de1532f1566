"""
Viewer WebSocket: join a tournament's group to receive race assignment
updates as they happen. Messages are JSON objects:

    {"event": "RaceAssignmentUpdated", "data": <assignments>}
    {"event": "RingCleared", "data": {"ringNumber": 2, "assignments": <assignments>}}

Viewers may send "ping" to check liveness and receive "pong".
"""
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from flyball.services.connection_manager import ConnectionManager, get_connection_manager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/tournaments/{tournament_id}")
async def tournament_updates(
    websocket: WebSocket,
    tournament_id: str,
    manager: ConnectionManager = Depends(get_connection_manager),
):
    await manager.connect(websocket, tournament_id)
    try:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        logger.info(f"Viewer left tournament {tournament_id}")
    finally:
        manager.disconnect(websocket, tournament_id)
