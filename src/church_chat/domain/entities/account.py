from __future__ import annotations

from dataclasses import dataclass

from church_chat.domain.value_objects.enums import AccountRole


@dataclass(frozen=True, slots=True)
class Account:
    """Read-only view of a platform user owned by the accounts service."""

    id: str
    name: str
    email: str | None
    profile_image: str | None
    role: AccountRole

    @property
    def is_admin(self) -> bool:
        return self.role == AccountRole.ADMIN
