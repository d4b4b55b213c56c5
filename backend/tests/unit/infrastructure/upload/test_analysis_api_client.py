"""Unit tests for AnalysisApiClient.

HTTP is served by `httpx.MockTransport`; no network is used.
"""

import json
from typing import Callable, List

import httpx
import pytest

from application.upload.context import SessionContext
from domain.upload.core.exceptions import (
    AnalysisError,
    AnalysisTimeoutError,
    ApiRequestError,
    QuotaExceededError,
)
from domain.upload.models import MealAnalysis, QuotaInfo
from infrastructure.config import CaptureSettings
from infrastructure.upload.analysis_api_client import AnalysisApiClient

BLOB = "user_test/abc_lunch.jpg"

Handler = Callable[[httpx.Request], httpx.Response]


def _client(settings: CaptureSettings, handler: Handler) -> AnalysisApiClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AnalysisApiClient(settings, client=http)


@pytest.fixture
def analysis_payload() -> dict:
    return {
        "mealAnalysisId": "meal-42",
        "foods": [{"name": "Salmon", "portion": "120g", "protein": 30.5}],
        "totalProtein": 30.5,
        "confidence": "high",
        "blobName": BLOB,
        "requestId": "req-42",
        "quota": {"used": 2, "limit": 5, "remaining": 3, "plan": "free"},
    }


class TestAnalyze:
    @pytest.mark.asyncio
    async def test_success(
        self,
        settings: CaptureSettings,
        session_context: SessionContext,
        analysis_payload: dict,
    ) -> None:
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=analysis_payload)

        analysis = await _client(settings, handler).analyze(BLOB, session_context)

        assert isinstance(analysis, MealAnalysis)
        assert analysis.meal_analysis_id == "meal-42"
        assert analysis.quota == QuotaInfo(used=2, limit=5, remaining=3, plan="free")

        (request,) = requests
        assert request.method == "POST"
        assert str(request.url) == "https://api.test/api/meals/analyze"
        assert json.loads(request.content) == {"blobName": BLOB}
        assert request.headers["x-user-id"] == "user_test"
        assert "traceparent" in request.headers

    @pytest.mark.asyncio
    async def test_quota_exceeded(
        self, settings: CaptureSettings, session_context: SessionContext
    ) -> None:
        body = {
            "error": "Quota exceeded",
            "quota": {"used": 5, "limit": 5, "remaining": 0, "plan": "free"},
        }

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json=body)

        with pytest.raises(QuotaExceededError) as exc_info:
            await _client(settings, handler).analyze(BLOB, session_context)

        assert exc_info.value.quota is not None
        assert exc_info.value.quota.remaining == 0
        assert exc_info.value.body == body

    @pytest.mark.asyncio
    async def test_server_error_not_retried(
        self, settings: CaptureSettings, session_context: SessionContext
    ) -> None:
        calls: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.method)
            return httpx.Response(500, json={"error": "Internal error", "requestId": "r1"})

        with pytest.raises(ApiRequestError) as exc_info:
            await _client(settings, handler).analyze(BLOB, session_context)

        assert exc_info.value.status_code == 500
        assert str(exc_info.value) == "Internal error"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_non_json_error_body(
        self, settings: CaptureSettings, session_context: SessionContext
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        with pytest.raises(ApiRequestError, match="Analysis request failed: 502"):
            await _client(settings, handler).analyze(BLOB, session_context)

    @pytest.mark.asyncio
    async def test_timeout_retried_once(
        self,
        settings: CaptureSettings,
        session_context: SessionContext,
        analysis_payload: dict,
    ) -> None:
        calls: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.method)
            if len(calls) == 1:
                raise httpx.ReadTimeout("cold start", request=request)
            return httpx.Response(200, json=analysis_payload)

        analysis = await _client(settings, handler).analyze(BLOB, session_context)

        assert analysis.meal_analysis_id == "meal-42"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_timeout_exhausted(
        self, settings: CaptureSettings, session_context: SessionContext
    ) -> None:
        calls: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.method)
            raise httpx.ReadTimeout("still cold", request=request)

        with pytest.raises(AnalysisTimeoutError, match="Analysis timed out"):
            await _client(settings, handler).analyze(BLOB, session_context)

        assert len(calls) == settings.analysis_max_attempts

    @pytest.mark.asyncio
    async def test_network_error_not_retried(
        self, settings: CaptureSettings, session_context: SessionContext
    ) -> None:
        calls: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.method)
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(AnalysisError, match="Network error requesting analysis"):
            await _client(settings, handler).analyze(BLOB, session_context)

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_malformed_result(
        self, settings: CaptureSettings, session_context: SessionContext
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"foods": "nope"})

        with pytest.raises(AnalysisError, match="malformed result"):
            await _client(settings, handler).analyze(BLOB, session_context)

    @pytest.mark.asyncio
    async def test_requires_client(
        self, settings: CaptureSettings, session_context: SessionContext
    ) -> None:
        with pytest.raises(RuntimeError):
            await AnalysisApiClient(settings).analyze(BLOB, session_context)
