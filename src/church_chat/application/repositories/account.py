from __future__ import annotations

from typing import Iterable, Protocol

from church_chat.domain.entities.account import Account


class AccountReader(Protocol):
    async def get_by_id(self, account_id: str) -> Account | None:
        """Return the account unless it is unknown or soft-deleted."""
        ...

    async def get_many(self, account_ids: Iterable[str]) -> dict[str, Account]: ...
