from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from church_chat.api.v1.gateway import ChatGateway
from church_chat.config import settings
from church_chat.domain.value_objects.enums import ConnectionState
from church_chat.infrastructure.ws.connection import WebSocketConnection

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


def _bearer_token(websocket: WebSocket) -> str | None:
    header = websocket.headers.get("authorization")
    if not header:
        return None
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value:
        return value
    return header


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    token: str | None = Query(None),
) -> None:
    gateway: ChatGateway = websocket.app.state.gateway
    await websocket.accept()
    conn = WebSocketConnection(websocket)

    if not await gateway.open(conn, token or _bearer_token(websocket)):
        return

    heartbeat_task = asyncio.create_task(
        _heartbeat(conn), name=f"ws-heartbeat-{conn.id}",
    )
    try:
        while conn.state != ConnectionState.DISCONNECTED:
            raw = await websocket.receive_text()
            await gateway.dispatch(conn, raw)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", conn)
    finally:
        heartbeat_task.cancel()
        await gateway.close(conn)


async def _heartbeat(conn: WebSocketConnection) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await conn.send("pong", {})
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Heartbeat stopped for %s", conn.id, exc_info=True)
