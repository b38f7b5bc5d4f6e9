from __future__ import annotations

from church_chat.application.dto.principal import Principal
from church_chat.application.exceptions import AuthError, ForbiddenError, NotFoundError, ValidationError
from church_chat.application.ports.auth import TokenVerifier
from church_chat.application.repositories.account import AccountReader
from church_chat.domain.entities.account import Account
from church_chat.domain.value_objects.ids import is_valid_account_id


async def authenticate(
    verifier: TokenVerifier,
    token: str | None,
    accounts: AccountReader,
) -> tuple[Principal, Account]:
    """Verify ``token`` and load the account behind it.

    The role of the returned principal is the stored one, not the token claim.
    """
    if not token:
        raise AuthError("No token provided")
    claimed = await verifier.verify(token)
    account = await accounts.get_by_id(claimed.user_id)
    if account is None:
        raise AuthError("User not found")
    return Principal.from_account(account), account


async def resolve_counterpart(
    principal: Principal,
    counterpart_id: str,
    accounts: AccountReader,
) -> Account:
    """Validate and resolve the other party of a two-party thread.

    Threads always pair one admin with one regular user.
    """
    if not is_valid_account_id(counterpart_id):
        raise ValidationError("Invalid user ID")
    if counterpart_id == principal.user_id:
        raise ValidationError("Cannot chat with yourself")

    counterpart = await accounts.get_by_id(counterpart_id)
    if counterpart is None:
        raise NotFoundError("User not found")

    if principal.is_admin and counterpart.is_admin:
        raise ForbiddenError("Admins can only chat with users")
    if not principal.is_admin and not counterpart.is_admin:
        raise ForbiddenError("You can only chat with admins")
    return counterpart


def assert_admin(principal: Principal) -> None:
    if not principal.is_admin:
        raise ForbiddenError("Access denied. Admin privileges required.")
