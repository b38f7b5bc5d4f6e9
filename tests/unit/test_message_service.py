from __future__ import annotations

import uuid

import pytest

from church_chat.application.dto.message import SendMessageDTO
from church_chat.application.dto.principal import Principal
from church_chat.application.exceptions import ForbiddenError, NotFoundError, ValidationError
from church_chat.config import settings
from church_chat.domain.value_objects.enums import AccountRole
from church_chat.services import message_service
from tests.conftest import ADMIN_ID, OTHER_USER_ID, USER_ID, FakeUoW, at, make_account, make_message


@pytest.mark.asyncio
async def test_send_message_creates_message(user_principal, uow):
    view = await message_service.send_message(
        user_principal, SendMessageDTO(recipient_id=ADMIN_ID, body="  hello  "), uow,
    )

    msg = view.message
    assert msg.body == "hello"
    assert msg.sender_id == USER_ID
    assert msg.recipient_id == ADMIN_ID
    assert msg.sender_role == "user"
    assert msg.is_read is False
    assert view.sender is not None and view.sender.name == "Mary Smith"
    assert uow._committed is True
    assert len(uow.messages._messages) == 1


@pytest.mark.asyncio
async def test_send_message_raises_recipient_unread_count(user_principal, admin_principal, uow):
    before = await message_service.unread_count(admin_principal, uow)

    await message_service.send_message(
        user_principal, SendMessageDTO(recipient_id=ADMIN_ID, body="hi"), uow,
    )

    assert await message_service.unread_count(admin_principal, uow) == before + 1
    assert await message_service.unread_count(user_principal, uow) == 0


@pytest.mark.asyncio
async def test_send_attachment_without_text(admin_principal, uow):
    view = await message_service.send_message(
        admin_principal,
        SendMessageDTO(recipient_id=USER_ID, attachment="https://cdn/x.png", attachment_type="image"),
        uow,
    )

    assert view.message.body == ""
    assert view.message.attachment_type == "image"
    assert view.message.sender_role == "admin"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", ["", "   ", None])
async def test_send_empty_message_rejected(user_principal, uow, body):
    with pytest.raises(ValidationError):
        await message_service.send_message(
            user_principal, SendMessageDTO(recipient_id=ADMIN_ID, body=body), uow,
        )
    assert uow.messages._messages == []
    assert uow._committed is False


@pytest.mark.asyncio
async def test_send_too_long_message_rejected(user_principal, uow):
    with pytest.raises(ValidationError):
        await message_service.send_message(
            user_principal,
            SendMessageDTO(recipient_id=ADMIN_ID, body="x" * (settings.MESSAGE_MAX_LENGTH + 1)),
            uow,
        )


@pytest.mark.asyncio
async def test_send_unknown_attachment_type_rejected(user_principal, uow):
    with pytest.raises(ValidationError):
        await message_service.send_message(
            user_principal,
            SendMessageDTO(recipient_id=ADMIN_ID, attachment="f.bin", attachment_type="binary"),
            uow,
        )


@pytest.mark.asyncio
@pytest.mark.parametrize("recipient_id", ["", "bad id", "x" * 65])
async def test_send_malformed_recipient_rejected(user_principal, uow, recipient_id):
    with pytest.raises(ValidationError):
        await message_service.send_message(
            user_principal, SendMessageDTO(recipient_id=recipient_id, body="hi"), uow,
        )


@pytest.mark.asyncio
async def test_send_to_self_rejected(user_principal, uow):
    with pytest.raises(ValidationError):
        await message_service.send_message(
            user_principal, SendMessageDTO(recipient_id=USER_ID, body="hi"), uow,
        )


@pytest.mark.asyncio
async def test_send_to_unknown_account(user_principal, uow):
    with pytest.raises(NotFoundError):
        await message_service.send_message(
            user_principal, SendMessageDTO(recipient_id="ghost", body="hi"), uow,
        )


@pytest.mark.asyncio
async def test_user_cannot_message_user(user_principal, uow):
    with pytest.raises(ForbiddenError):
        await message_service.send_message(
            user_principal, SendMessageDTO(recipient_id=OTHER_USER_ID, body="hi"), uow,
        )


@pytest.mark.asyncio
async def test_admin_cannot_message_admin(admin_principal, uow):
    uow.accounts.add(make_account("admin-2", role=AccountRole.ADMIN))
    with pytest.raises(ForbiddenError):
        await message_service.send_message(
            admin_principal, SendMessageDTO(recipient_id="admin-2", body="hi"), uow,
        )


@pytest.mark.asyncio
async def test_send_from_unknown_sender_rejected(uow):
    ghost = Principal(user_id="ghost", role=AccountRole.USER)
    with pytest.raises(ValidationError):
        await message_service.send_message(
            ghost, SendMessageDTO(recipient_id=ADMIN_ID, body="hi"), uow,
        )


@pytest.mark.asyncio
async def test_history_pages_newest_first_chronological_inside(user_principal, uow):
    for i in range(5):
        uow.messages._messages.append(make_message(body=f"m{i}", created_at=at(i)))

    first = await message_service.list_history(user_principal, ADMIN_ID, 1, 2, uow)
    last = await message_service.list_history(user_principal, ADMIN_ID, 3, 2, uow)

    assert [v.message.body for v in first.messages] == ["m3", "m4"]
    assert first.total == 5
    assert first.pages == 3
    assert [v.message.body for v in last.messages] == ["m0"]


@pytest.mark.asyncio
async def test_history_ties_keep_insertion_order(user_principal, uow):
    for i in range(3):
        uow.messages._messages.append(make_message(body=f"m{i}", created_at=at(0)))

    page = await message_service.list_history(user_principal, ADMIN_ID, 1, 10, uow)

    assert [v.message.body for v in page.messages] == ["m0", "m1", "m2"]


@pytest.mark.asyncio
async def test_history_excludes_other_threads_and_deleted(admin_principal, uow):
    keep = make_message(body="keep")
    gone = make_message(body="gone")
    other = make_message(sender_id=OTHER_USER_ID, body="other")
    uow.messages._messages.extend([keep, gone, other])
    await uow.messages_w.soft_delete(gone.id, at(1))

    page = await message_service.list_history(admin_principal, USER_ID, 1, 10, uow)

    assert [v.message.body for v in page.messages] == ["keep"]
    assert page.messages[0].sender is not None
    assert page.messages[0].sender.id == USER_ID


@pytest.mark.asyncio
async def test_history_marks_incoming_messages_on_page_read(admin_principal, user_principal, uow):
    for i in range(3):
        uow.messages._messages.append(make_message(body=f"m{i}", created_at=at(i)))
    uow.messages._messages.append(
        make_message(
            sender_id=ADMIN_ID, recipient_id=USER_ID, sender_role=AccountRole.ADMIN,
            body="reply", created_at=at(3),
        )
    )

    page = await message_service.list_history(admin_principal, USER_ID, 1, 3, uow)

    assert [v.message.body for v in page.messages] == ["m1", "m2", "reply"]
    assert page.marked_read == 2
    assert [v.message.is_read for v in page.messages] == [False, False, False]
    assert await message_service.unread_count(admin_principal, uow) == 1
    assert await message_service.unread_count(user_principal, uow) == 1
    assert uow._committed is True


@pytest.mark.asyncio
async def test_history_refetch_marks_nothing(admin_principal, uow):
    uow.messages._messages.append(make_message())

    first = await message_service.list_history(admin_principal, USER_ID, 1, 10, uow)
    second = await message_service.list_history(admin_principal, USER_ID, 1, 10, uow)

    assert first.marked_read == 1
    assert second.marked_read == 0
    assert await message_service.unread_count(admin_principal, uow) == 0


@pytest.mark.asyncio
async def test_history_of_own_messages_marks_nothing(user_principal, uow):
    uow.messages._messages.append(make_message())

    page = await message_service.list_history(user_principal, ADMIN_ID, 1, 10, uow)

    assert page.marked_read == 0
    assert uow._committed is False


@pytest.mark.asyncio
@pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (1, settings.MAX_PAGE_SIZE + 1)])
async def test_history_rejects_bad_paging(user_principal, uow, page, limit):
    with pytest.raises(ValidationError):
        await message_service.list_history(user_principal, ADMIN_ID, page, limit, uow)


@pytest.mark.asyncio
async def test_mark_read_is_idempotent(admin_principal, uow):
    for i in range(3):
        uow.messages._messages.append(make_message(body=f"m{i}", created_at=at(i)))

    first = await message_service.mark_read(admin_principal, USER_ID, uow)
    second = await message_service.mark_read(admin_principal, USER_ID, uow)

    assert first == 3
    assert second == 0
    assert await message_service.unread_count(admin_principal, uow) == 0
    assert all(m.read_at is not None for m in uow.messages._messages)


@pytest.mark.asyncio
async def test_mark_read_only_touches_incoming(admin_principal, user_principal, uow):
    uow.messages._messages.append(make_message(body="to admin"))
    uow.messages._messages.append(
        make_message(sender_id=ADMIN_ID, recipient_id=USER_ID, sender_role=AccountRole.ADMIN, body="to user")
    )

    updated = await message_service.mark_read(admin_principal, USER_ID, uow)

    assert updated == 1
    assert await message_service.unread_count(user_principal, uow) == 1


@pytest.mark.asyncio
async def test_unread_count_spans_counterparts(admin_principal, uow):
    uow.messages._messages.append(make_message())
    uow.messages._messages.append(make_message(sender_id=OTHER_USER_ID))
    uow.messages._messages.append(make_message(is_read=True))

    assert await message_service.unread_count(admin_principal, uow) == 2


@pytest.mark.asyncio
async def test_delete_own_message(user_principal, uow):
    msg = make_message()
    uow.messages._messages.append(msg)

    await message_service.delete_message(user_principal, msg.id, uow)

    assert await uow.messages.get_by_id(msg.id) is None
    assert uow._committed is True


@pytest.mark.asyncio
async def test_delete_foreign_message_forbidden(admin_principal, uow):
    msg = make_message()
    uow.messages._messages.append(msg)

    with pytest.raises(ForbiddenError):
        await message_service.delete_message(admin_principal, msg.id, uow)


@pytest.mark.asyncio
async def test_delete_missing_message():
    with pytest.raises(NotFoundError):
        await message_service.delete_message(
            Principal(user_id=USER_ID), uuid.uuid4(), FakeUoW(),
        )
