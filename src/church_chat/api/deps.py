"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from church_chat.api.v1.gateway import ChatGateway
from church_chat.application.dto.principal import Principal
from church_chat.application.exceptions import AuthError, ForbiddenError
from church_chat.application.policies.permissions import authenticate
from church_chat.application.ports.auth import TokenVerifier
from church_chat.config import settings
from church_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from church_chat.infrastructure.auth.jwks_verifier import JWKSVerifier
from church_chat.infrastructure.db.session import AsyncSessionLocal
from church_chat.infrastructure.db.uow import SqlAlchemyUoW

_bearer_scheme = HTTPBearer(auto_error=False)


async def get_uow() -> AsyncIterator[SqlAlchemyUoW]:
    async with AsyncSessionLocal() as session:
        async with SqlAlchemyUoW(session) as uow:
            yield uow


UoWDep = Annotated[SqlAlchemyUoW, Depends(get_uow)]


def _get_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
    uow: UoWDep,
) -> Principal:
    """Resolve the bearer token to the caller; the role comes from the stored account."""
    if credentials is None:
        raise AuthError("Unauthorized. Please provide a token.")
    principal, _ = await authenticate(get_verifier(), credentials.credentials, uow.accounts)
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


async def get_current_admin(principal: CurrentPrincipal) -> Principal:
    if not principal.is_admin:
        raise ForbiddenError("Access denied. Admin privileges required.")
    return principal


CurrentAdmin = Annotated[Principal, Depends(get_current_admin)]


def get_gateway(request: Request) -> ChatGateway:
    return request.app.state.gateway


GatewayDep = Annotated[ChatGateway, Depends(get_gateway)]
