from __future__ import annotations

from datetime import datetime
from typing import Collection
from uuid import UUID

from sqlalchemy import Select, Update, and_, case, distinct, func, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlalchemy.sql.elements import ColumnElement

from church_chat.domain.entities.conversation import ConversationSummary
from church_chat.domain.entities.message import Message
from church_chat.domain.value_objects.enums import AccountRole
from church_chat.infrastructure.db.mappers import message as mapper
from church_chat.infrastructure.db.models.message import MessageModel


def _pair(a: str, b: str) -> ColumnElement[bool]:
    return or_(
        and_(MessageModel.sender_id == a, MessageModel.recipient_id == b),
        and_(MessageModel.sender_id == b, MessageModel.recipient_id == a),
    )


_visible = MessageModel.deleted_at.is_(None)


def conversation_summaries_stmt(viewer_id: str) -> Select:
    """Latest visible message and unread total per counterpart of ``viewer_id``."""
    counterpart = case(
        (MessageModel.sender_id == viewer_id, MessageModel.recipient_id),
        else_=MessageModel.sender_id,
    )
    unread = case(
        (
            and_(
                MessageModel.recipient_id == viewer_id,
                MessageModel.is_read.is_(False),
            ),
            1,
        ),
        else_=0,
    )
    ranked = (
        select(
            MessageModel,
            counterpart.label("counterpart_id"),
            func.row_number()
            .over(
                partition_by=counterpart,
                order_by=(MessageModel.created_at.desc(), MessageModel.seq.desc()),
            )
            .label("rn"),
            func.sum(unread).over(partition_by=counterpart).label("unread_count"),
        )
        .where(
            or_(
                MessageModel.sender_id == viewer_id,
                MessageModel.recipient_id == viewer_id,
            ),
            _visible,
        )
        .subquery("ranked")
    )
    latest = aliased(MessageModel, ranked)
    return select(latest, ranked.c.counterpart_id, ranked.c.unread_count).where(
        ranked.c.rn == 1
    )


def mark_read_stmt(
    recipient_id: str,
    sender_id: str,
    read_at: datetime,
    message_ids: Collection[UUID] | None = None,
) -> Update:
    # a row flips at most once, concurrent callers split the count
    stmt = update(MessageModel).where(
        MessageModel.recipient_id == recipient_id,
        MessageModel.sender_id == sender_id,
        MessageModel.is_read.is_(False),
        _visible,
    )
    if message_ids is not None:
        stmt = stmt.where(MessageModel.id.in_(list(message_ids)))
    return stmt.values(is_read=True, read_at=read_at, updated_at=read_at).execution_options(
        synchronize_session=False
    )


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, message_id: UUID) -> Message | None:
        stmt = select(MessageModel).where(MessageModel.id == message_id, _visible)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_between(
        self,
        a: str,
        b: str,
        *,
        offset: int = 0,
        limit: int = 50,
    ) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(_pair(a, b), _visible)
            .order_by(MessageModel.created_at.desc(), MessageModel.seq.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def count_between(self, a: str, b: str) -> int:
        stmt = select(func.count()).select_from(MessageModel).where(_pair(a, b), _visible)
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def count_unread_for(self, recipient_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(MessageModel)
            .where(
                MessageModel.recipient_id == recipient_id,
                MessageModel.is_read.is_(False),
                _visible,
            )
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def conversation_summaries(self, viewer_id: str) -> list[ConversationSummary]:
        result = await self._session.execute(conversation_summaries_stmt(viewer_id))
        return [
            ConversationSummary(
                counterpart_id=counterpart_id,
                last_message=mapper.model_to_entity(model),
                unread_count=int(unread_count or 0),
            )
            for model, counterpart_id, unread_count in result.all()
        ]

    async def chat_user_ids(self) -> set[str]:
        user_side = case(
            (MessageModel.sender_role == AccountRole.ADMIN.value, MessageModel.recipient_id),
            else_=MessageModel.sender_id,
        )
        stmt = select(distinct(user_side)).where(_visible)
        result = await self._session.execute(stmt)
        return set(result.scalars().all())

    async def count_replied_counterparts(self, sender_id: str) -> int:
        stmt = select(func.count(distinct(MessageModel.recipient_id))).where(
            MessageModel.sender_id == sender_id,
            _visible,
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, message: Message) -> Message:
        stmt = (
            insert(MessageModel)
            .values(**mapper.entity_to_values(message))
            .returning(MessageModel)
        )
        result = await self._session.execute(stmt)
        return mapper.model_to_entity(result.scalar_one())

    async def mark_read(
        self,
        recipient_id: str,
        sender_id: str,
        read_at: datetime,
        *,
        message_ids: Collection[UUID] | None = None,
    ) -> int:
        result = await self._session.execute(
            mark_read_stmt(recipient_id, sender_id, read_at, message_ids)
        )
        return result.rowcount or 0

    async def soft_delete(self, message_id: UUID, deleted_at: datetime) -> None:
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id)
            .values(deleted_at=deleted_at, updated_at=deleted_at)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)
