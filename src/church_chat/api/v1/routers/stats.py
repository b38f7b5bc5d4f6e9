from __future__ import annotations

from fastapi import APIRouter

from church_chat.api.deps import CurrentAdmin, GatewayDep, UoWDep
from church_chat.api.v1.schemas.common import Envelope
from church_chat.api.v1.schemas.stats import ChatStatsResponse
from church_chat.services import stats_service

router = APIRouter(prefix="/api/v1/chat", tags=["stats"])


@router.get("/stats", response_model=Envelope[ChatStatsResponse])
async def chat_stats(
    admin: CurrentAdmin,
    uow: UoWDep,
    gateway: GatewayDep,
) -> Envelope[ChatStatsResponse]:
    stats = await stats_service.chat_stats(admin, gateway.presence.online_count(), uow)
    return Envelope(
        message="Chat statistics retrieved successfully",
        data=ChatStatsResponse.model_validate(stats),
    )
