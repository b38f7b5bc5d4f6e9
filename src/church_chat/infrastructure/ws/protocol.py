"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # join-room | leave-room | send-message | typing | mark-read | notify-online | ping
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # message | messageSent | typing | read | userStatus | notification | error | pong
    data: dict[str, Any] = {}
