from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from church_chat.application.dto.message import (
    MessagePage,
    MessageView,
    SendMessageDTO,
    SenderProfile,
)
from church_chat.application.dto.principal import Principal
from church_chat.application.exceptions import ForbiddenError, NotFoundError, ValidationError
from church_chat.application.policies.permissions import resolve_counterpart
from church_chat.application.uow import UnitOfWork
from church_chat.config import settings
from church_chat.domain.entities.message import Message
from church_chat.domain.value_objects.enums import AttachmentType

logger = logging.getLogger(__name__)


def _clean_body(dto: SendMessageDTO) -> tuple[str, str | None, AttachmentType | None]:
    body = (dto.body or "").strip()
    attachment = (dto.attachment or "").strip() or None
    if not body and attachment is None:
        raise ValidationError("Message cannot be empty")
    if len(body) > settings.MESSAGE_MAX_LENGTH:
        raise ValidationError(
            f"Message is too long (max {settings.MESSAGE_MAX_LENGTH} characters)"
        )
    attachment_type: AttachmentType | None = None
    if dto.attachment_type is not None:
        try:
            attachment_type = AttachmentType(dto.attachment_type)
        except ValueError:
            raise ValidationError("Invalid attachment type") from None
    return body, attachment, attachment_type


async def send_message(
    principal: Principal,
    dto: SendMessageDTO,
    uow: UnitOfWork,
) -> MessageView:
    """Persist one message from ``principal`` to ``dto.recipient_id``.

    Nothing is written unless the body, both ids and the role pairing are
    valid. The returned view carries the sender's public profile.
    """
    body, attachment, attachment_type = _clean_body(dto)
    counterpart = await resolve_counterpart(principal, dto.recipient_id, uow.accounts)
    sender = await uow.accounts.get_by_id(principal.user_id)
    if sender is None:
        raise ValidationError("Sender account not found")

    now = datetime.now(timezone.utc)
    msg = Message(
        id=uuid.uuid4(),
        sender_id=sender.id,
        recipient_id=counterpart.id,
        sender_role=sender.role.value,
        body=body,
        attachment=attachment,
        attachment_type=attachment_type.value if attachment_type else None,
        is_read=False,
        read_at=None,
        created_at=now,
        updated_at=now,
    )
    msg = await uow.messages_w.create(msg)
    await uow.commit()
    logger.info("Message %s stored: %s -> %s", msg.id, msg.sender_id, msg.recipient_id)
    return MessageView(message=msg, sender=SenderProfile.from_account(sender))


async def list_history(
    principal: Principal,
    counterpart_id: str,
    page: int,
    limit: int,
    uow: UnitOfWork,
) -> MessagePage:
    """One page of the thread with ``counterpart_id``.

    Page 1 holds the newest messages; messages inside a page are returned
    oldest first. Unread messages on the page addressed to the caller are
    marked read; the page itself shows them as they were fetched.
    """
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1 or limit > settings.MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {settings.MAX_PAGE_SIZE}")

    counterpart = await resolve_counterpart(principal, counterpart_id, uow.accounts)
    newest_first = await uow.messages.list_between(
        principal.user_id, counterpart.id, offset=(page - 1) * limit, limit=limit,
    )
    total = await uow.messages.count_between(principal.user_id, counterpart.id)

    incoming = [
        m.id for m in newest_first
        if m.recipient_id == principal.user_id and not m.is_read
    ]
    marked = 0
    if incoming:
        marked = await uow.messages_w.mark_read(
            principal.user_id, counterpart.id, datetime.now(timezone.utc),
            message_ids=incoming,
        )
        await uow.commit()

    profiles = await uow.accounts.get_many({principal.user_id, counterpart.id})
    views = []
    for msg in reversed(newest_first):
        account = profiles.get(msg.sender_id)
        views.append(
            MessageView(
                message=msg,
                sender=SenderProfile.from_account(account) if account else None,
            )
        )
    return MessagePage(
        messages=views, page=page, limit=limit, total=total, marked_read=marked,
    )


async def mark_read(
    principal: Principal,
    counterpart_id: str,
    uow: UnitOfWork,
) -> int:
    """Mark everything ``counterpart_id`` sent to the caller as read. Idempotent."""
    counterpart = await resolve_counterpart(principal, counterpart_id, uow.accounts)
    updated = await uow.messages_w.mark_read(
        principal.user_id, counterpart.id, datetime.now(timezone.utc),
    )
    await uow.commit()
    if updated:
        logger.debug("Marked %d messages read for %s from %s", updated, principal.user_id, counterpart.id)
    return updated


async def unread_count(principal: Principal, uow: UnitOfWork) -> int:
    return await uow.messages.count_unread_for(principal.user_id)


async def delete_message(
    principal: Principal,
    message_id: uuid.UUID,
    uow: UnitOfWork,
) -> None:
    msg = await uow.messages.get_by_id(message_id)
    if msg is None:
        raise NotFoundError("Message not found")
    if msg.sender_id != principal.user_id:
        raise ForbiddenError("You can only delete your own messages")
    await uow.messages_w.soft_delete(message_id, datetime.now(timezone.utc))
    await uow.commit()
    logger.info("Message %s deleted by %s", message_id, principal.user_id)
