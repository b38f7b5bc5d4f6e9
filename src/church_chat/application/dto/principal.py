from __future__ import annotations

from dataclasses import dataclass

from church_chat.domain.entities.account import Account
from church_chat.domain.value_objects.enums import AccountRole


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller identity.

    Verifiers fill ``role`` from the token; once the account is loaded the
    stored role replaces it.
    """

    user_id: str
    role: AccountRole = AccountRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == AccountRole.ADMIN

    @classmethod
    def from_account(cls, account: Account) -> Principal:
        return cls(user_id=account.id, role=account.role)
