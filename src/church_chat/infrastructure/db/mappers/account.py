from __future__ import annotations

from church_chat.domain.entities.account import Account
from church_chat.domain.value_objects.enums import AccountRole
from church_chat.infrastructure.db.models.account import AccountModel


def model_to_entity(model: AccountModel) -> Account:
    role = AccountRole(model.role) if model.role in AccountRole.__members__.values() else AccountRole.USER
    return Account(
        id=model.id,
        name=model.name,
        email=model.email,
        profile_image=model.profile,
        role=role,
    )
