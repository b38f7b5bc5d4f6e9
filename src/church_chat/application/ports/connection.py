from __future__ import annotations

from typing import Any, Protocol

from church_chat.application.dto.principal import Principal
from church_chat.domain.value_objects.enums import ConnectionState


class Connection(Protocol):
    """One live client connection as seen by the gateway and the registries."""

    id: str
    principal: Principal | None
    state: ConnectionState

    async def send(self, event_type: str, data: dict[str, Any]) -> None: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...
