"""Seed development data: creates tables, sample accounts and a short thread."""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy.dialects.postgresql import insert

from church_chat.domain.entities.message import Message
from church_chat.domain.value_objects.enums import AccountRole
from church_chat.infrastructure.db.models import AccountModel
from church_chat.infrastructure.db.session import AsyncSessionLocal, create_tables, dispose_engine
from church_chat.infrastructure.db.uow import SqlAlchemyUoW

logger = logging.getLogger(__name__)

ACCOUNTS = [
    ("admin-1", "Pastor John", "pastor@example.org", AccountRole.ADMIN),
    ("user-42", "Mary Smith", "mary@example.org", AccountRole.USER),
    ("user-43", "Peter Jones", "peter@example.org", AccountRole.USER),
]


async def seed() -> None:
    await create_tables()

    async with AsyncSessionLocal() as session:
        stmt = insert(AccountModel).values([
            {"id": acc_id, "name": name, "email": email, "role": role.value}
            for acc_id, name, email, role in ACCOUNTS
        ]).on_conflict_do_nothing(index_elements=[AccountModel.id])
        await session.execute(stmt)

        uow = SqlAlchemyUoW(session)
        start = datetime.now(timezone.utc) - timedelta(minutes=10)

        messages_data = [
            ("user-42", "admin-1", AccountRole.USER, "Hello! Could someone pray with me this week?"),
            ("admin-1", "user-42", AccountRole.ADMIN, "Of course, Mary. When suits you?"),
            ("user-42", "admin-1", AccountRole.USER, "Thursday evening would be great."),
            ("user-43", "admin-1", AccountRole.USER, "Is the youth group meeting on Friday?"),
        ]
        for i, (sender_id, recipient_id, role, body) in enumerate(messages_data):
            ts = start + timedelta(minutes=i)
            await uow.messages_w.create(
                Message(
                    id=uuid.uuid4(),
                    sender_id=sender_id,
                    recipient_id=recipient_id,
                    sender_role=role.value,
                    body=body,
                    attachment=None,
                    attachment_type=None,
                    is_read=False,
                    read_at=None,
                    created_at=ts,
                    updated_at=ts,
                )
            )

        await uow.commit()
        logger.info("Seeded %d accounts and %d messages", len(ACCOUNTS), len(messages_data))


async def _run() -> None:
    try:
        await seed()
    finally:
        await dispose_engine()


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(_run())


if __name__ == "__main__":
    main()
