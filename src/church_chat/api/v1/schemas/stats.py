from __future__ import annotations

from church_chat.api.v1.schemas.common import CamelModel


class ChatStatsResponse(CamelModel):
    total_chats: int
    online_users: int
    unread_messages: int
    responded_chats: int
