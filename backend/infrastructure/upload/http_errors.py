"""Mapping of ProteinLens API error responses to domain exceptions."""

from typing import Any, Dict

import httpx
from pydantic import ValidationError

from domain.upload.core.exceptions import ApiRequestError, QuotaExceededError
from domain.upload.models import ApiErrorBody


def _decode_body(response: httpx.Response) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def api_error_from_response(response: httpx.Response, action: str) -> ApiRequestError:
    """Build the exception for a non-2xx response.

    Args:
        response: Error response.
        action: Human description used when the body carries no message,
            e.g. "Analysis request failed".
    """
    raw = _decode_body(response)
    try:
        body = ApiErrorBody.model_validate(raw)
    except ValidationError:
        body = ApiErrorBody()

    message = body.best_message(f"{action}: {response.status_code}")

    if response.status_code == 429:
        return QuotaExceededError(message, body=raw, quota=body.quota)
    return ApiRequestError(message, status_code=response.status_code, body=raw)
