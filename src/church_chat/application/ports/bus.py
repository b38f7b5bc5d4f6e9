from __future__ import annotations

from typing import Any, Protocol


class RoomBroadcaster(Protocol):
    """Delivers an event to every live member of a room, wherever it is connected."""

    async def broadcast(
        self,
        room: str,
        event_type: str,
        data: dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> None: ...
