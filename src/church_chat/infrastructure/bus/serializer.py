from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import UUID


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def serialize_room_event(
    room: str,
    event_type: str,
    payload: dict[str, Any],
    exclude: str | None = None,
) -> str:
    envelope = {"room": room, "event": event_type, "data": payload, "exclude": exclude}
    return json.dumps(envelope, cls=_Encoder)


def deserialize_room_event(raw: str | bytes) -> tuple[str, str, dict[str, Any], str | None]:
    data = json.loads(raw)
    return data["room"], data["event"], data["data"], data.get("exclude")
