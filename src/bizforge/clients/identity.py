"""Identity verification of Google-issued ID tokens."""

import asyncio
from dataclasses import dataclass
from typing import Protocol

import jwt
import structlog

from ..errors import ConfigurationError, InvalidToken

logger = structlog.get_logger(__name__)

GOOGLE_CERTS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = frozenset({"accounts.google.com", "https://accounts.google.com"})


@dataclass(frozen=True)
class VerifiedIdentity:
    caller_id: str
    email: str
    name: str | None = None
    picture: str | None = None


class IdentityVerifier(Protocol):
    async def verify(self, token: str) -> VerifiedIdentity: ...


class GoogleIdentityVerifier:
    """Verifies RS256 ID tokens against Google's published signing keys.

    Key lookup goes through ``jwt.PyJWKClient``, which caches the JWKS; the
    blocking fetch and decode run in a worker thread.
    """

    def __init__(self, client_id: str, jwks_url: str = GOOGLE_CERTS_URL):
        self.client_id = client_id
        self._jwks = jwt.PyJWKClient(jwks_url, cache_keys=True)

    async def verify(self, token: str) -> VerifiedIdentity:
        if not self.client_id:
            raise ConfigurationError("GOOGLE_CLIENT_ID is not configured")
        try:
            return await asyncio.to_thread(self._decode, token)
        except jwt.PyJWTError as e:
            logger.info("id_token_rejected", reason=str(e), error_type=type(e).__name__)
            raise InvalidToken(f"Invalid ID token: {e}") from e

    def _decode(self, token: str) -> VerifiedIdentity:
        signing_key = self._jwks.get_signing_key_from_jwt(token)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=self.client_id,
            options={"require": ["exp", "iat", "iss", "sub", "aud"]},
        )
        if claims["iss"] not in GOOGLE_ISSUERS:
            raise jwt.InvalidIssuerError(f"Unexpected issuer {claims['iss']}")
        if not claims.get("email"):
            raise jwt.MissingRequiredClaimError("email")

        return VerifiedIdentity(
            caller_id=claims["sub"],
            email=claims["email"],
            name=claims.get("name"),
            picture=claims.get("picture"),
        )
