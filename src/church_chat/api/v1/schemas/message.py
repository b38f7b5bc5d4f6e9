from __future__ import annotations

from datetime import datetime
from uuid import UUID

from church_chat.api.v1.schemas.common import CamelModel, Pagination
from church_chat.application.dto.message import MessagePage, MessageView, SenderProfile


class SenderProfileResponse(CamelModel):
    id: str
    name: str
    email: str | None
    profile_image: str | None
    role: str

    @classmethod
    def from_profile(cls, profile: SenderProfile) -> SenderProfileResponse:
        return cls.model_validate(profile)


class MessageResponse(CamelModel):
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
    sender: SenderProfileResponse | None = None

    @classmethod
    def from_view(cls, view: MessageView) -> MessageResponse:
        m = view.message
        return cls(
            id=m.id,
            sender_id=m.sender_id,
            recipient_id=m.recipient_id,
            sender_role=m.sender_role,
            body=m.body,
            attachment=m.attachment,
            attachment_type=m.attachment_type,
            is_read=m.is_read,
            read_at=m.read_at,
            created_at=m.created_at,
            updated_at=m.updated_at,
            sender=SenderProfileResponse.from_profile(view.sender) if view.sender else None,
        )


class SendMessageRequest(CamelModel):
    user_id: str
    message: str | None = None
    attachment: str | None = None
    attachment_type: str | None = None


class MessagesData(CamelModel):
    messages: list[MessageResponse]
    pagination: Pagination

    @classmethod
    def from_page(cls, page: MessagePage) -> MessagesData:
        return cls(
            messages=[MessageResponse.from_view(v) for v in page.messages],
            pagination=Pagination(
                page=page.page,
                limit=page.limit,
                total=page.total,
                pages=page.pages,
            ),
        )


class SentMessageData(CamelModel):
    message: MessageResponse


class MarkReadData(CamelModel):
    updated_count: int


class UnreadCountData(CamelModel):
    unread_count: int
