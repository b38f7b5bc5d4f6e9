from __future__ import annotations

from dataclasses import dataclass

from church_chat.application.dto.message import SenderProfile
from church_chat.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class ConversationView:
    counterpart: SenderProfile
    last_message: Message
    unread_count: int


@dataclass(frozen=True, slots=True)
class ChatStatsDTO:
    total_chats: int
    online_users: int
    unread_messages: int
    responded_chats: int
