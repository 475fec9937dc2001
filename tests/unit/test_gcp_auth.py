from datetime import UTC, datetime, timedelta

import httpx
import pytest
import respx

from bizforge.clients.gcp_auth import METADATA_TOKEN_URL, AccessTokenSource


@pytest.mark.asyncio
async def test_static_token_skips_metadata_server():
    source = AccessTokenSource(static_token="static")

    async with respx.mock(assert_all_called=False) as respx_mock:
        route = respx_mock.get(METADATA_TOKEN_URL)

        assert await source.auth_headers() == {"Authorization": "Bearer static"}
        assert not route.called


@pytest.mark.asyncio
async def test_metadata_token_is_cached():
    source = AccessTokenSource()

    async with respx.mock() as respx_mock:
        route = respx_mock.get(METADATA_TOKEN_URL).mock(
            return_value=httpx.Response(
                200, json={"access_token": "ya29.meta", "expires_in": 3600}
            )
        )

        assert await source.get_token() == "ya29.meta"
        assert await source.get_token() == "ya29.meta"
        assert route.call_count == 1
        assert route.calls.last.request.headers["Metadata-Flavor"] == "Google"


@pytest.mark.asyncio
async def test_token_near_expiry_is_refreshed():
    source = AccessTokenSource()
    # Less than the 60s buffer left
    source._cached = ("old", datetime.now(UTC) + timedelta(seconds=30))

    async with respx.mock() as respx_mock:
        respx_mock.get(METADATA_TOKEN_URL).mock(
            return_value=httpx.Response(200, json={"access_token": "new", "expires_in": 3600})
        )

        assert await source.get_token() == "new"
