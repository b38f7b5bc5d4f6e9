from __future__ import annotations

from dataclasses import dataclass

from church_chat.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class ConversationSummary:
    """Per-counterpart aggregate computed from the message table on read."""

    counterpart_id: str
    last_message: Message
    unread_count: int
