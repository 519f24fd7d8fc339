import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from dps.models.notification import Notification
from dps.services.notifications import notifications

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications"])


@router.get("/api/notifications", response_model=list[Notification])
async def list_notifications():
    """Latest user notifications, newest first."""
    return notifications.recent()


@router.websocket("/ws/notifications")
async def notifications_ws(websocket: WebSocket):
    """Push every notification to the connected post screen as it happens."""
    queue = notifications.subscribe()
    await websocket.accept()
    logger.info("Notification client connected")

    try:
        while True:
            try:
                event = await asyncio.wait_for(queue.get(), timeout=10.0)
            except asyncio.TimeoutError:
                event = {"type": "ping"}

            try:
                await websocket.send_json(event)
            except Exception:
                logger.debug("Failed to send notification to client")
                break
    except WebSocketDisconnect:
        logger.info("Notification client disconnected")
    except asyncio.CancelledError:
        pass
    finally:
        notifications.unsubscribe(queue)
