from __future__ import annotations

from fastapi import APIRouter

from church_chat.api.deps import CurrentPrincipal, UoWDep
from church_chat.api.v1.schemas.common import Envelope
from church_chat.api.v1.schemas.conversation import ConversationResponse, ConversationsData
from church_chat.services import conversation_service

router = APIRouter(prefix="/api/v1/chat", tags=["conversations"])


@router.get("/conversations", response_model=Envelope[ConversationsData])
async def list_conversations(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> Envelope[ConversationsData]:
    views = await conversation_service.list_for_viewer(principal, uow)
    return Envelope(
        message="Conversations retrieved successfully",
        data=ConversationsData(
            conversations=[ConversationResponse.from_view(v) for v in views],
        ),
    )
