from __future__ import annotations

from datetime import datetime
from uuid import UUID

from church_chat.api.v1.schemas.common import CamelModel
from church_chat.api.v1.schemas.message import SenderProfileResponse
from church_chat.application.dto.conversation import ConversationView


class LastMessageResponse(CamelModel):
    id: UUID
    body: str
    sender_id: str
    sender_role: str
    attachment_type: str | None
    is_read: bool
    created_at: datetime


class ConversationResponse(CamelModel):
    counterpart: SenderProfileResponse
    last_message: LastMessageResponse
    unread_count: int

    @classmethod
    def from_view(cls, view: ConversationView) -> ConversationResponse:
        return cls(
            counterpart=SenderProfileResponse.from_profile(view.counterpart),
            last_message=LastMessageResponse.model_validate(view.last_message),
            unread_count=view.unread_count,
        )


class ConversationsData(CamelModel):
    conversations: list[ConversationResponse]
