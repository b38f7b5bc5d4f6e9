"""Shared test fixtures."""
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Collection, Iterable
from uuid import UUID

import pytest

from church_chat.application.dto.principal import Principal
from church_chat.application.exceptions import AuthError, PersistenceError
from church_chat.domain.entities.account import Account
from church_chat.domain.entities.conversation import ConversationSummary
from church_chat.domain.entities.message import Message
from church_chat.domain.value_objects.enums import AccountRole, ConnectionState

ADMIN_ID = "admin-1"
USER_ID = "user-42"
OTHER_USER_ID = "user-43"

_BASE_TS = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def user_principal() -> Principal:
    return Principal(user_id=USER_ID, role=AccountRole.USER)


@pytest.fixture
def admin_principal() -> Principal:
    return Principal(user_id=ADMIN_ID, role=AccountRole.ADMIN)


def make_account(
    account_id: str,
    *,
    role: AccountRole = AccountRole.USER,
    name: str | None = None,
) -> Account:
    return Account(
        id=account_id,
        name=name or account_id.title(),
        email=f"{account_id}@example.org",
        profile_image=None,
        role=role,
    )


def make_message(
    *,
    sender_id: str = USER_ID,
    recipient_id: str = ADMIN_ID,
    sender_role: AccountRole = AccountRole.USER,
    body: str = "hello",
    created_at: datetime | None = None,
    is_read: bool = False,
) -> Message:
    ts = created_at or datetime.now(timezone.utc)
    return Message(
        id=uuid.uuid4(),
        sender_id=sender_id,
        recipient_id=recipient_id,
        sender_role=sender_role.value,
        body=body,
        attachment=None,
        attachment_type=None,
        is_read=is_read,
        read_at=ts if is_read else None,
        created_at=ts,
        updated_at=ts,
    )


def at(minutes: int) -> datetime:
    return _BASE_TS + timedelta(minutes=minutes)


@dataclass
class FakeAccountReader:
    _store: dict[str, Account] = field(default_factory=dict)

    def add(self, *accounts: Account) -> None:
        for account in accounts:
            self._store[account.id] = account

    async def get_by_id(self, account_id: str) -> Account | None:
        return self._store.get(account_id)

    async def get_many(self, account_ids: Iterable[str]) -> dict[str, Account]:
        return {i: self._store[i] for i in set(account_ids) if i in self._store}


@dataclass
class FakeMessageReader:
    """Keeps messages in insertion order; insertion order breaks timestamp ties."""

    _messages: list[Message] = field(default_factory=list)

    def _visible(self) -> list[tuple[int, Message]]:
        return [(seq, m) for seq, m in enumerate(self._messages) if m.deleted_at is None]

    async def get_by_id(self, message_id: UUID) -> Message | None:
        for _, m in self._visible():
            if m.id == message_id:
                return m
        return None

    async def list_between(self, a: str, b: str, *, offset: int = 0, limit: int = 50) -> list[Message]:
        pair = [(seq, m) for seq, m in self._visible() if m.involves(a, b)]
        pair.sort(key=lambda item: (item[1].created_at, item[0]), reverse=True)
        return [m for _, m in pair[offset:offset + limit]]

    async def count_between(self, a: str, b: str) -> int:
        return sum(1 for _, m in self._visible() if m.involves(a, b))

    async def count_unread_for(self, recipient_id: str) -> int:
        return sum(
            1 for _, m in self._visible()
            if m.recipient_id == recipient_id and not m.is_read
        )

    async def conversation_summaries(self, viewer_id: str) -> list[ConversationSummary]:
        latest: dict[str, tuple[datetime, int, Message]] = {}
        unread: dict[str, int] = {}
        for seq, m in self._visible():
            if viewer_id not in (m.sender_id, m.recipient_id):
                continue
            other = m.counterpart_of(viewer_id)
            key = (m.created_at, seq, m)
            if other not in latest or key[:2] > latest[other][:2]:
                latest[other] = key
            if m.recipient_id == viewer_id and not m.is_read:
                unread[other] = unread.get(other, 0) + 1
        return [
            ConversationSummary(
                counterpart_id=other,
                last_message=entry[2],
                unread_count=unread.get(other, 0),
            )
            for other, entry in latest.items()
        ]

    async def chat_user_ids(self) -> set[str]:
        return {
            m.recipient_id if m.sender_role == AccountRole.ADMIN.value else m.sender_id
            for _, m in self._visible()
        }

    async def count_replied_counterparts(self, sender_id: str) -> int:
        return len({m.recipient_id for _, m in self._visible() if m.sender_id == sender_id})


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader
    fail_on_create: bool = False

    async def create(self, message: Message) -> Message:
        if self.fail_on_create:
            raise PersistenceError("Failed to save changes")
        self._reader._messages.append(message)
        return message

    async def mark_read(
        self,
        recipient_id: str,
        sender_id: str,
        read_at: datetime,
        *,
        message_ids: Collection[UUID] | None = None,
    ) -> int:
        updated = 0
        for i, m in enumerate(self._reader._messages):
            if message_ids is not None and m.id not in message_ids:
                continue
            if (
                m.deleted_at is None
                and m.sender_id == sender_id
                and m.recipient_id == recipient_id
                and not m.is_read
            ):
                self._reader._messages[i] = replace(m, is_read=True, read_at=read_at, updated_at=read_at)
                updated += 1
        return updated

    async def soft_delete(self, message_id: UUID, deleted_at: datetime) -> None:
        for i, m in enumerate(self._reader._messages):
            if m.id == message_id:
                self._reader._messages[i] = replace(m, deleted_at=deleted_at)


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    accounts: FakeAccountReader = field(default_factory=FakeAccountReader)
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    _committed: bool = False
    _commits: int = 0

    def __post_init__(self) -> None:
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True
        self._commits += 1

    async def rollback(self) -> None:
        pass


def uow_factory(uow: FakeUoW):
    """Hand the same fake UoW to every operation that opens one."""

    @asynccontextmanager
    async def _factory() -> AsyncIterator[FakeUoW]:
        yield uow

    return _factory


@pytest.fixture
def uow() -> FakeUoW:
    """Fake UoW seeded with one admin and two regular users."""
    fake = FakeUoW()
    fake.accounts.add(
        make_account(ADMIN_ID, role=AccountRole.ADMIN, name="Pastor John"),
        make_account(USER_ID, name="Mary Smith"),
        make_account(OTHER_USER_ID, name="Peter Jones"),
    )
    return fake


@dataclass
class FakeVerifier:
    """Accepts tokens of the form ``<role>:<user_id>``."""

    async def verify(self, token: str) -> Principal:
        role, _, user_id = token.partition(":")
        if not user_id or role not in ("user", "admin"):
            raise AuthError("Invalid token")
        return Principal(user_id=user_id, role=AccountRole(role))


@dataclass
class FakeConnection:
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    principal: Principal | None = None
    state: ConnectionState = ConnectionState.UNAUTHENTICATED
    sent: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    closed_with: int | None = None
    broken: bool = False

    async def send(self, event_type: str, data: dict[str, Any]) -> None:
        if self.broken:
            raise ConnectionError("socket closed")
        self.sent.append((event_type, data))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed_with = code
        self.state = ConnectionState.DISCONNECTED

    def events(self, event_type: str) -> list[dict[str, Any]]:
        return [data for t, data in self.sent if t == event_type]

    def clear(self) -> None:
        self.sent.clear()


class FailingBroadcaster:
    """Room broadcaster whose transport is down."""

    def __init__(self) -> None:
        self.attempts = 0

    async def broadcast(self, room, event_type, data, *, exclude=None) -> None:
        self.attempts += 1
        raise ConnectionError("redis unavailable")
