"""Direct client-to-blob upload transport - Implements IUploadTransport port.

Flow:
1. POST {api}/upload-url -> short-lived SAS URL + blob name
2. PUT the bytes straight to blob storage (no base64 through the API)

Key Features:
- Streaming body with progress callbacks
- Retry with exponential backoff on network errors and 5xx (tenacity)
- Identity and W3C trace headers from the session context
"""

from typing import AsyncIterator, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from application.upload.context import SessionContext
from domain.upload.core.exceptions import UploadTransportError
from domain.upload.core.value_objects.image_file import ImageFile
from domain.upload.core.value_objects.uploaded_image import UploadedImage
from domain.upload.models import UploadUrlRequest, UploadUrlResponse
from domain.upload.ports.upload_transport import ProgressCallback
from infrastructure.config import CaptureSettings
from .http_errors import api_error_from_response

logger = structlog.get_logger(__name__)


class BlobUploadRejected(UploadTransportError):
    """Blob storage answered the PUT with a non-2xx status."""

    def __init__(self, status_code: int, reason: str) -> None:
        super().__init__(f"Blob upload failed: {status_code} {reason}".strip())
        self.status_code = status_code


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    # 403 means an expired/invalid SAS: retrying the same URL cannot help
    return isinstance(exc, BlobUploadRejected) and exc.status_code >= 500


def _log_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    logger.warning(
        "Blob upload attempt failed, retrying",
        attempt=state.attempt_number,
        error=str(exc),
    )


def public_blob_url(sas_url: str) -> str:
    """Blob URL without the SAS query string."""
    return sas_url.split("?", 1)[0]


class BlobUploadTransport:
    """
    Upload transport using SAS URLs granted by the ProteinLens API.

    Example:
        >>> async with BlobUploadTransport(CaptureSettings.from_env()) as transport:
        ...     ref = await transport.upload(image, context, on_progress=print)
        ...     print(ref.blob_name)
    """

    CHUNK_SIZE = 64 * 1024

    def __init__(
        self,
        settings: CaptureSettings,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize transport.

        Args:
            settings: Capture settings (API URL, timeouts, attempts)
            client: Optional pre-built httpx client (tests, shared pools);
                    otherwise one is created by the async context manager
        """
        self._settings = settings
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "BlobUploadTransport":
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Client not initialized. Use async context manager.")
        return self._client

    async def upload(
        self,
        image: ImageFile,
        context: SessionContext,
        on_progress: ProgressCallback,
    ) -> UploadedImage:
        grant = await self.request_upload_url(image, context)
        await self.put_blob(grant.upload_url, image, on_progress)

        uploaded = UploadedImage(url=public_blob_url(grant.upload_url), blob_name=grant.blob_name)
        logger.info(
            "Image uploaded",
            blob_name=grant.blob_name,
            size=image.size,
            correlation_id=context.trace.correlation_id,
        )
        return uploaded

    async def request_upload_url(
        self, image: ImageFile, context: SessionContext
    ) -> UploadUrlResponse:
        """
        Ask the API for a SAS URL.

        Raises:
            UploadTransportError: On timeout, network error or malformed reply
            ApiRequestError: On a non-2xx reply (e.g. type/size rejected)
        """
        request = UploadUrlRequest(
            file_name=image.filename,
            file_size=image.size,
            content_type=image.content_type,
        )
        url = f"{self._settings.api_url}/upload-url"

        logger.debug("Requesting upload URL", file_name=image.filename, size=image.size)

        try:
            response = await self._http().post(
                url,
                json=request.to_json_dict(),
                headers=context.headers(),
                timeout=self._settings.upload_url_timeout_s,
            )
        except httpx.TimeoutException as e:
            raise UploadTransportError(
                "Request timed out. The server may be waking up - please try again."
            ) from e
        except httpx.TransportError as e:
            raise UploadTransportError(f"Network error requesting upload URL: {e}") from e

        if response.is_error:
            logger.warning("Upload URL request rejected", status=response.status_code)
            raise api_error_from_response(response, "Upload URL request failed")

        try:
            return UploadUrlResponse.model_validate(response.json())
        except ValueError as e:
            raise UploadTransportError("Malformed upload URL response") from e

    async def put_blob(
        self, sas_url: str, image: ImageFile, on_progress: ProgressCallback
    ) -> None:
        """
        PUT the image bytes to blob storage, retrying transient failures.

        Raises:
            UploadTransportError: When every attempt failed
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.blob_upload_max_attempts),
            wait=wait_exponential(multiplier=self._settings.retry_backoff_s, max=10),
            retry=retry_if_exception(_is_retryable),
            before_sleep=_log_retry,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    await self._put_once(sas_url, image, on_progress)
        except httpx.TimeoutException as e:
            raise UploadTransportError(
                "Upload timed out. Please check your network connection and try again."
            ) from e
        except httpx.TransportError as e:
            raise UploadTransportError(f"Network error during upload: {e}") from e

    async def _put_once(
        self, sas_url: str, image: ImageFile, on_progress: ProgressCallback
    ) -> None:
        headers = {
            "Content-Type": image.content_type,
            "Content-Length": str(image.size),
            "x-ms-blob-type": "BlockBlob",
        }
        response = await self._http().put(
            sas_url,
            content=self._chunks(image.data, on_progress),
            headers=headers,
            timeout=self._settings.blob_upload_timeout_s,
        )
        if response.is_error:
            raise BlobUploadRejected(response.status_code, response.reason_phrase)

    async def _chunks(self, data: bytes, on_progress: ProgressCallback) -> AsyncIterator[bytes]:
        total = len(data)
        sent = 0
        for start in range(0, total, self.CHUNK_SIZE):
            chunk = data[start : start + self.CHUNK_SIZE]
            yield chunk
            sent += len(chunk)
            on_progress(int(sent * 100 / total))
