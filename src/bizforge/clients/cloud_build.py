"""Build provider backed by Google Cloud Build, with Cloud Run for service URLs."""

from dataclasses import dataclass
from typing import Any, Protocol

import httpx
import structlog

from ..errors import BuildProviderError
from ..models import DeploymentStatus
from .gcp_auth import AccessTokenSource

logger = structlog.get_logger(__name__)

CLOUD_BUILD_URL = "https://cloudbuild.googleapis.com/v1"
CLOUD_RUN_URL = "https://run.googleapis.com/v2"

# resp.json() raises ValueError on non-JSON bodies; token responses without
# access_token raise KeyError
_REQUEST_ERRORS = (httpx.HTTPError, ValueError, KeyError)

# Cloud Build states collapsed onto the tracker lifecycle.
# STATUS_UNKNOWN and unrecognised values map to None.
_STATUS_MAP = {
    "PENDING": DeploymentStatus.QUEUED,
    "QUEUED": DeploymentStatus.QUEUED,
    "WORKING": DeploymentStatus.WORKING,
    "SUCCESS": DeploymentStatus.SUCCESS,
    "FAILURE": DeploymentStatus.FAILURE,
    "INTERNAL_ERROR": DeploymentStatus.FAILURE,
    "TIMEOUT": DeploymentStatus.FAILURE,
    "CANCELLED": DeploymentStatus.FAILURE,
    "EXPIRED": DeploymentStatus.FAILURE,
}


@dataclass(frozen=True)
class BuildStatusReport:
    status: DeploymentStatus | None
    service_url: str | None = None
    raw_status: str | None = None


class BuildProvider(Protocol):
    async def submit(self, build_spec: dict[str, Any]) -> str: ...

    async def get_status(self, build_id: str) -> BuildStatusReport: ...


def map_build_status(raw_status: str | None) -> DeploymentStatus | None:
    if raw_status is None:
        return None
    return _STATUS_MAP.get(raw_status.upper())


class CloudBuildClient:
    """HTTP client for the Cloud Build and Cloud Run REST APIs."""

    def __init__(
        self,
        project_id: str,
        token_source: AccessTokenSource,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.project_id = project_id
        self.token_source = token_source
        self._client = http_client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=30.0)
        return self._client

    async def _request(self, method: str, url: str, **kwargs) -> dict:
        headers = await self.token_source.auth_headers()
        resp = await self._get_client().request(method, url, headers=headers, **kwargs)
        resp.raise_for_status()
        return resp.json()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def submit(self, build_spec: dict[str, Any]) -> str:
        """Create a build and return its id.

        Raises:
            BuildProviderError: Request failed or the operation carries no build id.
        """
        url = f"{CLOUD_BUILD_URL}/projects/{self.project_id}/builds"
        try:
            operation = await self._request("POST", url, json=build_spec)
        except _REQUEST_ERRORS as e:
            logger.error("cloud_build_submit_failed", error=str(e), error_type=type(e).__name__)
            raise BuildProviderError(f"Cloud Build request failed: {e}") from e

        build_id = operation.get("metadata", {}).get("build", {}).get("id")
        if not build_id:
            raise BuildProviderError("Cloud Build operation did not include a build id")

        logger.info("cloud_build_submitted", build_id=build_id, operation=operation.get("name"))
        return build_id

    async def get_status(self, build_id: str) -> BuildStatusReport:
        """Fetch the build status; on success also resolve the deployed service URL.

        Raises:
            BuildProviderError: The build status could not be fetched.
        """
        url = f"{CLOUD_BUILD_URL}/projects/{self.project_id}/builds/{build_id}"
        try:
            build = await self._request("GET", url)
        except _REQUEST_ERRORS as e:
            raise BuildProviderError(f"Cloud Build status request failed: {e}") from e

        raw_status = build.get("status")
        status = map_build_status(raw_status)
        service_url = None
        if status is DeploymentStatus.SUCCESS:
            substitutions = build.get("substitutions", {})
            service_url = await self._get_service_url(
                substitutions.get("_SERVICE_NAME"), substitutions.get("_REGION")
            )

        return BuildStatusReport(status=status, service_url=service_url, raw_status=raw_status)

    async def _get_service_url(self, service_name: str | None, region: str | None) -> str | None:
        """Best-effort lookup of the Cloud Run service URL."""
        if not service_name or not region:
            return None
        url = (
            f"{CLOUD_RUN_URL}/projects/{self.project_id}/locations/{region}"
            f"/services/{service_name}"
        )
        try:
            service = await self._request("GET", url)
        except _REQUEST_ERRORS as e:
            logger.warning(
                "cloud_run_service_lookup_failed", service_name=service_name, error=str(e)
            )
            return None
        return service.get("uri")
