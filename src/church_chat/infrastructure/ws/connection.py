from __future__ import annotations

import uuid
from typing import Any

from fastapi import WebSocket

from church_chat.application.dto.principal import Principal
from church_chat.domain.value_objects.enums import ConnectionState
from church_chat.infrastructure.ws.protocol import WsOutbound


class WebSocketConnection:
    """Adapts a FastAPI WebSocket to the gateway's Connection port."""

    def __init__(self, websocket: WebSocket) -> None:
        self.id = uuid.uuid4().hex
        self.principal: Principal | None = None
        self.state = ConnectionState.UNAUTHENTICATED
        self._ws = websocket

    async def send(self, event_type: str, data: dict[str, Any]) -> None:
        raw = WsOutbound(type=event_type, data=data).model_dump_json()
        await self._ws.send_text(raw)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.state = ConnectionState.DISCONNECTED
        await self._ws.close(code=code, reason=reason)

    def __repr__(self) -> str:
        user = self.principal.user_id if self.principal else "-"
        return f"<WebSocketConnection {self.id} user={user} state={self.state}>"
