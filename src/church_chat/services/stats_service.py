from __future__ import annotations

from church_chat.application.dto.conversation import ChatStatsDTO
from church_chat.application.dto.principal import Principal
from church_chat.application.policies.permissions import assert_admin
from church_chat.application.uow import UnitOfWork


async def chat_stats(
    principal: Principal,
    online_users: int,
    uow: UnitOfWork,
) -> ChatStatsDTO:
    """Dashboard counters.

    ``total_chats`` spans every admin and only counts users whose account
    still resolves; unread and responded counts belong to the caller.
    """
    assert_admin(principal)
    user_ids = await uow.messages.chat_user_ids()
    known = await uow.accounts.get_many(user_ids)
    return ChatStatsDTO(
        total_chats=len(known),
        online_users=online_users,
        unread_messages=await uow.messages.count_unread_for(principal.user_id),
        responded_chats=await uow.messages.count_replied_counterparts(principal.user_id),
    )
