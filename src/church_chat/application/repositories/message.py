from __future__ import annotations

from datetime import datetime
from typing import Collection, Protocol
from uuid import UUID

from church_chat.domain.entities.conversation import ConversationSummary
from church_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def get_by_id(self, message_id: UUID) -> Message | None: ...

    async def list_between(
        self,
        a: str,
        b: str,
        *,
        offset: int = 0,
        limit: int = 50,
    ) -> list[Message]:
        """Messages of the unordered pair {a, b}, newest first."""
        ...

    async def count_between(self, a: str, b: str) -> int: ...

    async def count_unread_for(self, recipient_id: str) -> int: ...

    async def conversation_summaries(self, viewer_id: str) -> list[ConversationSummary]: ...

    async def chat_user_ids(self) -> set[str]:
        """Non-admin participants of any visible message, across all admins."""
        ...

    async def count_replied_counterparts(self, sender_id: str) -> int:
        """Distinct recipients that ``sender_id`` has sent at least one message to."""
        ...


class MessageWriter(Protocol):
    async def create(self, message: Message) -> Message: ...

    async def mark_read(
        self,
        recipient_id: str,
        sender_id: str,
        read_at: datetime,
        *,
        message_ids: Collection[UUID] | None = None,
    ) -> int:
        """Flip unread messages from sender to recipient. Return the number updated.

        ``message_ids`` narrows the update to those messages.
        """
        ...

    async def soft_delete(self, message_id: UUID, deleted_at: datetime) -> None: ...
