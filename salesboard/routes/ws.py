"""Streaming transport: one WebSocket per dashboard viewer.

Inbound frames are ``{"type", "room"?, "token"?, "data"?}`` JSON text. A
frame that fails authorization or validation is logged and dropped, as is
any binary frame; the socket stays open and nothing is sent back.
"""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PayloadError

from salesboard.auth import resolve_caller
from salesboard.errors import DashboardError
from salesboard.logging_config import (
    bind_connection_context,
    clear_connection_context,
    get_logger,
)
from salesboard.realtime.hub import BroadcastHub, Connection
from salesboard.schemas import CounterUpdateMessage, InboundFrame, NotificationCreate

logger = get_logger(__name__)
router = APIRouter(tags=["realtime"])

MSG_JOIN = "join"
MSG_UPDATE_COUNTERS = "tl:updateCounters"
MSG_PUSH_NOTIFICATION = "admin:pushNotification"
MSG_CLEAR_NOTIFICATION = "admin:clearNotification"


async def _handle_frame(websocket: WebSocket, connection: Connection, frame: InboundFrame) -> None:
    state = websocket.app.state
    hub: BroadcastHub = state.hub

    if frame.type == MSG_JOIN:
        if not frame.room:
            logger.info("ws_message_dropped", type=frame.type, reason="missing room")
            return
        await hub.join(connection, frame.room)

    elif frame.type == MSG_UPDATE_COUNTERS:
        message = CounterUpdateMessage.model_validate(frame.data or {})
        await state.gateway.apply_counter_delta(frame.token, message.agent_id, message.delta)

    elif frame.type == MSG_PUSH_NOTIFICATION:
        caller = await resolve_caller(state.storage, frame.token)
        payload = NotificationCreate.model_validate(frame.data or {})
        await state.notifications.push(caller, payload)

    elif frame.type == MSG_CLEAR_NOTIFICATION:
        caller = await resolve_caller(state.storage, frame.token)
        await state.notifications.clear_active(caller)

    else:
        logger.info("ws_message_dropped", type=frame.type, reason="unknown message type")


@router.websocket("/ws")
async def dashboard_socket(websocket: WebSocket):
    await websocket.accept()
    hub: BroadcastHub = websocket.app.state.hub
    connection = await hub.add(websocket)
    bind_connection_context(connection.id)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
            raw = message.get("text")
            if raw is None:
                logger.info("ws_message_dropped", reason="non-text frame")
                continue
            try:
                frame = InboundFrame.model_validate_json(raw)
                await _handle_frame(websocket, connection, frame)
            except DashboardError as e:
                logger.info(
                    "ws_message_dropped",
                    error=e.error_type,
                    detail=e.message,
                )
            except PayloadError as e:
                logger.info("ws_message_dropped", error="validation_error", detail=str(e))
            except WebSocketDisconnect:
                raise
            except Exception:
                logger.exception("ws_message_failed")
    except WebSocketDisconnect:
        pass
    finally:
        await hub.remove(connection)
        clear_connection_context()
