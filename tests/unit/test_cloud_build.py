import httpx
import pytest
import respx

from bizforge.clients.cloud_build import CloudBuildClient, map_build_status
from bizforge.clients.gcp_auth import METADATA_TOKEN_URL, AccessTokenSource
from bizforge.errors import BuildProviderError
from bizforge.models import DeploymentStatus

BUILDS_PATH = "/v1/projects/proj-gcp/builds"
SERVICE_PATH = "/v2/projects/proj-gcp/locations/us-central1/services/biz-ver1"


@pytest.fixture
def client():
    return CloudBuildClient("proj-gcp", AccessTokenSource(static_token="test-token"))


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("PENDING", DeploymentStatus.QUEUED),
        ("QUEUED", DeploymentStatus.QUEUED),
        ("WORKING", DeploymentStatus.WORKING),
        ("SUCCESS", DeploymentStatus.SUCCESS),
        ("TIMEOUT", DeploymentStatus.FAILURE),
        ("CANCELLED", DeploymentStatus.FAILURE),
        ("INTERNAL_ERROR", DeploymentStatus.FAILURE),
        ("STATUS_UNKNOWN", None),
        (None, None),
    ],
)
def test_map_build_status(raw, expected):
    assert map_build_status(raw) is expected


@pytest.mark.asyncio
async def test_submit_returns_build_id(client):
    async with respx.mock(base_url="https://cloudbuild.googleapis.com") as respx_mock:
        route = respx_mock.post(BUILDS_PATH).mock(
            return_value=httpx.Response(
                200,
                json={"name": "operations/op-1", "metadata": {"build": {"id": "build-42"}}},
            )
        )

        build_id = await client.submit({"steps": []})

        assert build_id == "build-42"
        assert route.calls.last.request.headers["Authorization"] == "Bearer test-token"


@pytest.mark.asyncio
async def test_submit_http_error(client):
    async with respx.mock(base_url="https://cloudbuild.googleapis.com") as respx_mock:
        respx_mock.post(BUILDS_PATH).mock(return_value=httpx.Response(403))

        with pytest.raises(BuildProviderError):
            await client.submit({"steps": []})


@pytest.mark.asyncio
async def test_submit_without_build_id(client):
    async with respx.mock(base_url="https://cloudbuild.googleapis.com") as respx_mock:
        respx_mock.post(BUILDS_PATH).mock(return_value=httpx.Response(200, json={"metadata": {}}))

        with pytest.raises(BuildProviderError, match="build id"):
            await client.submit({"steps": []})


@pytest.mark.asyncio
async def test_get_status_working(client):
    async with respx.mock(base_url="https://cloudbuild.googleapis.com") as respx_mock:
        respx_mock.get(f"{BUILDS_PATH}/build-42").mock(
            return_value=httpx.Response(200, json={"id": "build-42", "status": "WORKING"})
        )

        report = await client.get_status("build-42")

        assert report.status is DeploymentStatus.WORKING
        assert report.service_url is None
        assert report.raw_status == "WORKING"


@pytest.mark.asyncio
async def test_get_status_success_resolves_service_url(client):
    with respx.mock() as respx_mock:
        respx_mock.get(f"https://cloudbuild.googleapis.com{BUILDS_PATH}/build-42").mock(
            return_value=httpx.Response(
                200,
                json={
                    "id": "build-42",
                    "status": "SUCCESS",
                    "substitutions": {"_SERVICE_NAME": "biz-ver1", "_REGION": "us-central1"},
                },
            )
        )
        respx_mock.get(f"https://run.googleapis.com{SERVICE_PATH}").mock(
            return_value=httpx.Response(200, json={"uri": "https://biz-ver1-abc.a.run.app"})
        )

        report = await client.get_status("build-42")

        assert report.status is DeploymentStatus.SUCCESS
        assert report.service_url == "https://biz-ver1-abc.a.run.app"


@pytest.mark.asyncio
async def test_service_lookup_failure_is_not_fatal(client):
    with respx.mock() as respx_mock:
        respx_mock.get(f"https://cloudbuild.googleapis.com{BUILDS_PATH}/build-42").mock(
            return_value=httpx.Response(
                200,
                json={
                    "status": "SUCCESS",
                    "substitutions": {"_SERVICE_NAME": "biz-ver1", "_REGION": "us-central1"},
                },
            )
        )
        respx_mock.get(f"https://run.googleapis.com{SERVICE_PATH}").mock(
            return_value=httpx.Response(404)
        )

        report = await client.get_status("build-42")

        assert report.status is DeploymentStatus.SUCCESS
        assert report.service_url is None


@pytest.mark.asyncio
async def test_get_status_transport_error(client):
    async with respx.mock(base_url="https://cloudbuild.googleapis.com") as respx_mock:
        respx_mock.get(f"{BUILDS_PATH}/build-42").mock(side_effect=httpx.ConnectError("down"))

        with pytest.raises(BuildProviderError):
            await client.get_status("build-42")


@pytest.mark.asyncio
async def test_get_status_non_json_body(client):
    async with respx.mock(base_url="https://cloudbuild.googleapis.com") as respx_mock:
        respx_mock.get(f"{BUILDS_PATH}/build-42").mock(
            return_value=httpx.Response(200, text="<html>maintenance</html>")
        )

        with pytest.raises(BuildProviderError):
            await client.get_status("build-42")


@pytest.mark.asyncio
async def test_get_status_token_without_access_token():
    client = CloudBuildClient("proj-gcp", AccessTokenSource())

    async with respx.mock() as respx_mock:
        respx_mock.get(METADATA_TOKEN_URL).mock(
            return_value=httpx.Response(200, json={"expires_in": 3600})
        )

        with pytest.raises(BuildProviderError):
            await client.get_status("build-42")
