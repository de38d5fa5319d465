"""
WebSocket endpoint for the realtime hub.

The endpoint only moves frames: every text frame goes to the hub, which
answers through the connection's outbox.
"""

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from link_app.infrastructure.observability.logging import get_logger

from .hub import RealtimeHub

logger = get_logger(__name__)

router = APIRouter(tags=["realtime"])


def get_realtime_hub(websocket: WebSocket) -> RealtimeHub:
    return websocket.app.state.coordination.hub


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, hub: RealtimeHub = Depends(get_realtime_hub)):
    await websocket.accept()
    connection = await hub.connect(websocket)
    try:
        while True:
            frame = await websocket.receive_text()
            await hub.handle_message(connection, frame)
    except WebSocketDisconnect as e:
        logger.debug("Realtime client disconnected", connection_id=connection.id, code=e.code)
    finally:
        await hub.disconnect(connection)
