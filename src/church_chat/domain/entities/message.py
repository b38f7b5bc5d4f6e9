from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    sender_id: str
    recipient_id: str
    sender_role: str
    body: str
    attachment: str | None
    attachment_type: str | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    def counterpart_of(self, viewer_id: str) -> str:
        return self.recipient_id if self.sender_id == viewer_id else self.sender_id

    def involves(self, a: str, b: str) -> bool:
        return {self.sender_id, self.recipient_id} == {a, b}
