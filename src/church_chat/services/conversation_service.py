from __future__ import annotations

import logging

from church_chat.application.dto.conversation import ConversationView
from church_chat.application.dto.message import SenderProfile
from church_chat.application.dto.principal import Principal
from church_chat.application.uow import UnitOfWork

logger = logging.getLogger(__name__)


async def list_for_viewer(
    principal: Principal,
    uow: UnitOfWork,
) -> list[ConversationView]:
    """One entry per counterpart the caller has exchanged messages with.

    Newest activity first; equal timestamps fall back to counterpart id.
    """
    summaries = await uow.messages.conversation_summaries(principal.user_id)
    accounts = await uow.accounts.get_many(s.counterpart_id for s in summaries)

    views: list[ConversationView] = []
    for summary in summaries:
        account = accounts.get(summary.counterpart_id)
        if account is None:
            logger.debug("Skipping conversation with unknown account %s", summary.counterpart_id)
            continue
        views.append(
            ConversationView(
                counterpart=SenderProfile.from_account(account),
                last_message=summary.last_message,
                unread_count=summary.unread_count,
            )
        )

    views.sort(key=lambda v: v.counterpart.id)
    views.sort(key=lambda v: v.last_message.created_at, reverse=True)
    return views
