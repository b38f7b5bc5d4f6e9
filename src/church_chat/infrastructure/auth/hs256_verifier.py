from __future__ import annotations

from typing import Any

import jwt

from church_chat.application.dto.principal import Principal
from church_chat.application.exceptions import AuthError
from church_chat.domain.value_objects.enums import AccountRole


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """Build a Principal from token claims.

    Tokens issued by the admin backend carry the account id in ``id``;
    standard ``sub`` is accepted as well.
    """
    subject = payload.get("id", payload.get("sub"))
    if subject is None or str(subject) == "":
        raise AuthError("Token has no subject")
    role_raw = payload.get("role", "user")
    role = AccountRole(role_raw) if role_raw in AccountRole.__members__.values() else AccountRole.USER
    return Principal(user_id=str(subject), role=role)


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise AuthError("Token expired") from exc
        except jwt.PyJWTError as exc:
            raise AuthError("Invalid token") from exc
        return principal_from_claims(payload)
