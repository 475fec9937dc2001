"""Artifact store backed by the Google Cloud Storage JSON API."""

import asyncio
from dataclasses import dataclass
import json
from pathlib import PurePosixPath
import re
from typing import Protocol
import uuid

import httpx
import structlog

from ..errors import ArtifactUploadError
from .gcp_auth import AccessTokenSource

logger = structlog.get_logger(__name__)

UPLOAD_URL = "https://storage.googleapis.com/upload/storage/v1/b/{bucket}/o"
CACHE_CONTROL = "public, max-age=31536000"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

CONTENT_TYPES = {
    ".html": "text/html",
    ".js": "application/javascript",
    ".mjs": "application/javascript",
    ".css": "text/css",
    ".json": "application/json",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".svg": "image/svg+xml",
    ".txt": "text/plain",
    ".ts": "text/plain",
    ".tsx": "text/plain",
    ".map": "application/json",
}


@dataclass(frozen=True)
class FileBlob:
    path: str
    data: bytes


class ArtifactStore(Protocol):
    async def put_tree(self, bucket: str, prefix: str, files: list[FileBlob]) -> list[str]: ...


def content_type_for(path: str) -> str:
    return CONTENT_TYPES.get(PurePosixPath(path).suffix.lower(), DEFAULT_CONTENT_TYPE)


def object_name(prefix: str, path: str) -> str:
    """Join prefix and relative path, collapsing duplicate slashes."""
    return re.sub(r"/+", "/", f"{prefix}/{path}").lstrip("/")


def _multipart_body(metadata: dict, data: bytes, content_type: str) -> tuple[bytes, str]:
    boundary = uuid.uuid4().hex
    head = (
        f"--{boundary}\r\n"
        "Content-Type: application/json; charset=UTF-8\r\n\r\n"
        f"{json.dumps(metadata)}\r\n"
        f"--{boundary}\r\n"
        f"Content-Type: {content_type}\r\n\r\n"
    ).encode()
    tail = f"\r\n--{boundary}--\r\n".encode()
    return head + data + tail, f"multipart/related; boundary={boundary}"


class CloudStorageClient:
    """Uploads file trees as individual objects, concurrently."""

    def __init__(
        self,
        token_source: AccessTokenSource,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.token_source = token_source
        self._client = http_client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=60.0)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _put_object(self, bucket: str, name: str, data: bytes) -> str:
        content_type = content_type_for(name)
        metadata = {"name": name, "contentType": content_type, "cacheControl": CACHE_CONTROL}
        body, multipart_type = _multipart_body(metadata, data, content_type)
        headers = await self.token_source.auth_headers()
        headers["Content-Type"] = multipart_type

        resp = await self._get_client().post(
            UPLOAD_URL.format(bucket=bucket),
            params={"uploadType": "multipart"},
            content=body,
            headers=headers,
        )
        resp.raise_for_status()
        return name

    async def put_tree(self, bucket: str, prefix: str, files: list[FileBlob]) -> list[str]:
        """Upload every file under ``prefix`` and return the object names.

        Raises:
            ArtifactUploadError: If any upload fails.
        """
        names = [object_name(prefix, f.path) for f in files]
        try:
            uploaded = await asyncio.gather(
                *(self._put_object(bucket, name, f.data) for name, f in zip(names, files))
            )
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error("artifact_upload_failed", bucket=bucket, prefix=prefix, error=str(e))
            raise ArtifactUploadError(f"Upload to gs://{bucket}/{prefix} failed: {e}") from e

        logger.info("artifact_tree_uploaded", bucket=bucket, prefix=prefix, files=len(uploaded))
        return list(uploaded)
