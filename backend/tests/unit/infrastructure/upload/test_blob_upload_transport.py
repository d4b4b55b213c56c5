"""Unit tests for BlobUploadTransport.

HTTP is served by `httpx.MockTransport`; no network is used.
"""

import json
from typing import Callable, List

import httpx
import pytest

from application.upload.context import SessionContext
from domain.upload.core.exceptions import ApiRequestError, UploadTransportError
from domain.upload.core.value_objects.image_file import ImageFile
from infrastructure.config import CaptureSettings
from infrastructure.upload.blob_upload_transport import (
    BlobUploadRejected,
    BlobUploadTransport,
    public_blob_url,
)

SAS_URL = "https://blob.test/meal-images/user_test/abc_lunch.jpg?sv=2024&sig=secret"
GRANT = {
    "uploadUrl": SAS_URL,
    "blobName": "user_test/abc_lunch.jpg",
    "expiresIn": 600,
}

Handler = Callable[[httpx.Request], httpx.Response]


def _transport(settings: CaptureSettings, handler: Handler) -> BlobUploadTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return BlobUploadTransport(settings, client=client)


@pytest.fixture
def photo() -> ImageFile:
    # 150 KB: three 64 KB chunks
    return ImageFile("lunch.jpg", "image/jpeg", b"\xff" * (150 * 1024))


class TestUpload:
    @pytest.mark.asyncio
    async def test_success(
        self,
        settings: CaptureSettings,
        session_context: SessionContext,
        photo: ImageFile,
    ) -> None:
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.method == "POST":
                return httpx.Response(200, json=GRANT)
            return httpx.Response(201)

        progress: List[int] = []
        transport = _transport(settings, handler)

        uploaded = await transport.upload(photo, session_context, progress.append)

        assert uploaded.blob_name == "user_test/abc_lunch.jpg"
        assert uploaded.url == "https://blob.test/meal-images/user_test/abc_lunch.jpg"
        assert progress == [42, 85, 100]

        grant_request, put_request = requests
        assert str(grant_request.url) == "https://api.test/api/upload-url"
        assert json.loads(grant_request.content) == {
            "fileName": "lunch.jpg",
            "fileSize": photo.size,
            "contentType": "image/jpeg",
        }
        assert grant_request.headers["x-user-id"] == "user_test"
        assert grant_request.headers["traceparent"].startswith(
            "00-0af7651916cd43dd8448eb211c80319c-"
        )

        assert put_request.method == "PUT"
        assert str(put_request.url) == SAS_URL
        assert put_request.headers["x-ms-blob-type"] == "BlockBlob"
        assert put_request.headers["content-type"] == "image/jpeg"
        assert put_request.headers["content-length"] == str(photo.size)
        assert put_request.content == photo.data

    @pytest.mark.asyncio
    async def test_upload_url_rejected(
        self,
        settings: CaptureSettings,
        session_context: SessionContext,
        photo: ImageFile,
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": "Invalid content type"})

        with pytest.raises(ApiRequestError) as exc_info:
            await _transport(settings, handler).upload(photo, session_context, lambda p: None)

        assert exc_info.value.status_code == 400
        assert str(exc_info.value) == "Invalid content type"

    @pytest.mark.asyncio
    async def test_upload_url_timeout(
        self,
        settings: CaptureSettings,
        session_context: SessionContext,
        photo: ImageFile,
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(UploadTransportError, match="Request timed out"):
            await _transport(settings, handler).upload(photo, session_context, lambda p: None)

    @pytest.mark.asyncio
    async def test_malformed_grant(
        self,
        settings: CaptureSettings,
        session_context: SessionContext,
        photo: ImageFile,
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"unexpected": True})

        with pytest.raises(UploadTransportError, match="Malformed upload URL response"):
            await _transport(settings, handler).upload(photo, session_context, lambda p: None)


class TestPutBlobRetry:
    @pytest.mark.asyncio
    async def test_forbidden_not_retried(
        self, settings: CaptureSettings, photo: ImageFile
    ) -> None:
        calls: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.method)
            return httpx.Response(403)

        with pytest.raises(BlobUploadRejected) as exc_info:
            await _transport(settings, handler).put_blob(SAS_URL, photo, lambda p: None)

        assert exc_info.value.status_code == 403
        assert isinstance(exc_info.value, UploadTransportError)
        assert calls == ["PUT"]

    @pytest.mark.asyncio
    async def test_server_error_retried(self, settings: CaptureSettings, photo: ImageFile) -> None:
        statuses = iter([503, 201])
        calls: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.method)
            return httpx.Response(next(statuses))

        await _transport(settings, handler).put_blob(SAS_URL, photo, lambda p: None)

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_network_errors_exhaust_attempts(
        self, settings: CaptureSettings, photo: ImageFile
    ) -> None:
        calls: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.method)
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UploadTransportError, match="Network error during upload"):
            await _transport(settings, handler).put_blob(SAS_URL, photo, lambda p: None)

        assert len(calls) == settings.blob_upload_max_attempts

    @pytest.mark.asyncio
    async def test_timeouts_mapped(self, settings: CaptureSettings, photo: ImageFile) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.WriteTimeout("slow network", request=request)

        with pytest.raises(UploadTransportError, match="Upload timed out"):
            await _transport(settings, handler).put_blob(SAS_URL, photo, lambda p: None)

    @pytest.mark.asyncio
    async def test_single_attempt_setting(self, photo: ImageFile) -> None:
        settings = CaptureSettings(
            api_base_url="https://api.test", blob_upload_max_attempts=1, retry_backoff_s=0
        )
        calls: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.method)
            return httpx.Response(500)

        with pytest.raises(BlobUploadRejected):
            await _transport(settings, handler).put_blob(SAS_URL, photo, lambda p: None)

        assert len(calls) == 1


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_requires_client(
        self,
        settings: CaptureSettings,
        session_context: SessionContext,
        photo: ImageFile,
    ) -> None:
        with pytest.raises(RuntimeError, match="async context manager"):
            await BlobUploadTransport(settings).upload(photo, session_context, lambda p: None)

    @pytest.mark.asyncio
    async def test_context_manager_owns_client(self, settings: CaptureSettings) -> None:
        transport = BlobUploadTransport(settings)

        async with transport:
            assert transport._client is not None

        assert transport._client is None

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self, settings: CaptureSettings) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))

        async with BlobUploadTransport(settings, client=client):
            pass

        assert not client.is_closed
        await client.aclose()


def test_public_blob_url_strips_sas() -> None:
    assert public_blob_url(SAS_URL) == "https://blob.test/meal-images/user_test/abc_lunch.jpg"
