"""ProteinLens analysis API client - Implements IAnalysisClient port.

POST {api}/meals/analyze with the blob name of an uploaded photo. The AI
call behind it can be slow on cold starts, so the request gets a long
timeout and one retry on timeout only; server errors are never retried.
"""

from typing import Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from application.upload.context import SessionContext
from domain.upload.core.exceptions import AnalysisError, AnalysisTimeoutError
from domain.upload.models import AnalyzeRequest, MealAnalysis
from infrastructure.config import CaptureSettings
from .http_errors import api_error_from_response

logger = structlog.get_logger(__name__)

TIMEOUT_MESSAGE = "Analysis timed out. The server may be busy - please try again in a moment."


def _log_retry(state: RetryCallState) -> None:
    logger.warning("Analysis attempt timed out, retrying", attempt=state.attempt_number)


class AnalysisApiClient:
    """
    Analysis service client.

    Example:
        >>> async with AnalysisApiClient(CaptureSettings.from_env()) as client:
        ...     analysis = await client.analyze("user_1/meal.jpg", context)
        ...     print(analysis.total_protein)
    """

    def __init__(
        self,
        settings: CaptureSettings,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._settings = settings
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "AnalysisApiClient":
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

    async def analyze(self, blob_name: str, context: SessionContext) -> MealAnalysis:
        """
        Request the analysis of an uploaded photo.

        Raises:
            QuotaExceededError: HTTP 429
            ApiRequestError: Any other non-2xx response
            AnalysisTimeoutError: Timed out on every attempt
            AnalysisError: Network failure or malformed result
        """
        url = f"{self._settings.api_url}/meals/analyze"
        body = AnalyzeRequest(blob_name=blob_name).to_json_dict()

        logger.info(
            "Requesting meal analysis",
            blob_name=blob_name,
            correlation_id=context.trace.correlation_id,
        )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.analysis_max_attempts),
            wait=wait_fixed(self._settings.retry_backoff_s),
            retry=retry_if_exception_type(httpx.TimeoutException),
            before_sleep=_log_retry,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._http().post(
                        url,
                        json=body,
                        headers=context.headers(),
                        timeout=self._settings.analysis_timeout_s,
                    )
        except httpx.TimeoutException as e:
            logger.error("Analysis timed out", blob_name=blob_name)
            raise AnalysisTimeoutError(TIMEOUT_MESSAGE) from e
        except httpx.TransportError as e:
            raise AnalysisError(f"Network error requesting analysis: {e}") from e

        if response.is_error:
            logger.warning(
                "Analysis request rejected",
                status=response.status_code,
                blob_name=blob_name,
            )
            raise api_error_from_response(response, "Analysis request failed")

        try:
            analysis = MealAnalysis.model_validate(response.json())
        except ValueError as e:
            logger.error("Malformed analysis result", blob_name=blob_name, error=str(e))
            raise AnalysisError("Analysis failed: malformed result from the server") from e

        logger.info(
            "Meal analysis complete",
            meal_analysis_id=analysis.meal_analysis_id,
            food_count=len(analysis.foods),
            total_protein=analysis.total_protein,
        )
        return analysis
