from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query

from church_chat.api.deps import CurrentPrincipal, GatewayDep, UoWDep
from church_chat.api.v1.schemas.common import Envelope
from church_chat.api.v1.schemas.message import (
    MarkReadData,
    MessageResponse,
    MessagesData,
    SendMessageRequest,
    SentMessageData,
    UnreadCountData,
)
from church_chat.application.dto.message import SendMessageDTO
from church_chat.config import settings
from church_chat.services import message_service

router = APIRouter(prefix="/api/v1/chat", tags=["messages"])


@router.get("/messages/{counterpart_id}", response_model=Envelope[MessagesData])
async def list_messages(
    counterpart_id: str,
    principal: CurrentPrincipal,
    uow: UoWDep,
    gateway: GatewayDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
) -> Envelope[MessagesData]:
    result = await message_service.list_history(principal, counterpart_id, page, limit, uow)
    if result.marked_read:
        await gateway.publish_read(principal.user_id, counterpart_id, result.marked_read)
    return Envelope(
        message="Messages retrieved successfully",
        data=MessagesData.from_page(result),
    )


@router.post("/messages/{counterpart_id}/read", response_model=Envelope[MarkReadData])
async def mark_messages_read(
    counterpart_id: str,
    principal: CurrentPrincipal,
    uow: UoWDep,
    gateway: GatewayDep,
) -> Envelope[MarkReadData]:
    updated = await message_service.mark_read(principal, counterpart_id, uow)
    if updated:
        await gateway.publish_read(principal.user_id, counterpart_id, updated)
    return Envelope(
        message="Messages marked as read",
        data=MarkReadData(updated_count=updated),
    )


@router.post("/messages", response_model=Envelope[SentMessageData], status_code=201)
async def send_message(
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    gateway: GatewayDep,
) -> Envelope[SentMessageData]:
    view = await message_service.send_message(
        principal,
        SendMessageDTO(
            recipient_id=body.user_id,
            body=body.message,
            attachment=body.attachment,
            attachment_type=body.attachment_type,
        ),
        uow,
    )
    await gateway.publish_message(view)
    return Envelope(
        message="Message sent successfully",
        data=SentMessageData(message=MessageResponse.from_view(view)),
    )


@router.delete("/messages/{message_id}", response_model=Envelope[None])
async def delete_message(
    message_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> Envelope[None]:
    await message_service.delete_message(principal, message_id, uow)
    return Envelope(message="Message deleted successfully")


@router.get("/unread-count", response_model=Envelope[UnreadCountData])
async def unread_count(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> Envelope[UnreadCountData]:
    count = await message_service.unread_count(principal, uow)
    return Envelope(
        message="Unread count retrieved successfully",
        data=UnreadCountData(unread_count=count),
    )
