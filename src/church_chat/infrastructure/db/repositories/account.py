from __future__ import annotations

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from church_chat.domain.entities.account import Account
from church_chat.infrastructure.db.mappers import account as mapper
from church_chat.infrastructure.db.models.account import AccountModel


class AccountReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, account_id: str) -> Account | None:
        model = await self._session.get(AccountModel, account_id)
        if model is None or model.deleted_at is not None:
            return None
        return mapper.model_to_entity(model)

    async def get_many(self, account_ids: Iterable[str]) -> dict[str, Account]:
        ids = list(set(account_ids))
        if not ids:
            return {}
        stmt = select(AccountModel).where(
            AccountModel.id.in_(ids),
            AccountModel.deleted_at.is_(None),
        )
        result = await self._session.execute(stmt)
        return {m.id: mapper.model_to_entity(m) for m in result.scalars().all()}
