from __future__ import annotations

import logging

import jwt
from jwt import PyJWKClient

from church_chat.application.dto.principal import Principal
from church_chat.application.exceptions import AuthError
from church_chat.infrastructure.auth.hs256_verifier import principal_from_claims

logger = logging.getLogger(__name__)


class JWKSVerifier:
    """Verify JWTs using a remote JWKS endpoint."""

    def __init__(self, jwks_url: str) -> None:
        self._jwks_url = jwks_url
        self._jwk_client = PyJWKClient(jwks_url)

    async def verify(self, token: str) -> Principal:
        try:
            signing_key = self._jwk_client.get_signing_key_from_jwt(token)
            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256", "ES256"],
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthError("Token expired") from exc
        except jwt.PyJWTError as exc:
            logger.debug("JWKS verification failed for %s", self._jwks_url, exc_info=True)
            raise AuthError("Invalid token") from exc
        return principal_from_claims(payload)
