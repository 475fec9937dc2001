"""OAuth access tokens for Google Cloud REST APIs."""

from datetime import UTC, datetime, timedelta

import httpx
import structlog

logger = structlog.get_logger(__name__)

METADATA_TOKEN_URL = (
    "http://metadata.google.internal/computeMetadata/v1/instance/service-accounts/default/token"
)
# Refresh tokens this long before they expire
EXPIRY_BUFFER = timedelta(seconds=60)


class AccessTokenSource:
    """Provides bearer tokens, either a static one or from the metadata server.

    Metadata server tokens are cached until shortly before they expire.
    """

    def __init__(self, static_token: str = "", http_client: httpx.AsyncClient | None = None):
        self.static_token = static_token
        self._client = http_client
        self._cached: tuple[str, datetime] | None = None

    async def get_token(self) -> str:
        if self.static_token:
            return self.static_token

        if self._cached:
            token, expires_at = self._cached
            if datetime.now(UTC) < expires_at - EXPIRY_BUFFER:
                return token

        client = self._client or httpx.AsyncClient(timeout=10.0)
        try:
            resp = await client.get(METADATA_TOKEN_URL, headers={"Metadata-Flavor": "Google"})
            resp.raise_for_status()
            data = resp.json()
        finally:
            if self._client is None:
                await client.aclose()

        expires_at = datetime.now(UTC) + timedelta(seconds=int(data.get("expires_in", 0)))
        self._cached = (data["access_token"], expires_at)
        logger.debug("gcp_access_token_refreshed", expires_at=expires_at.isoformat())
        return data["access_token"]

    async def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {await self.get_token()}"}
