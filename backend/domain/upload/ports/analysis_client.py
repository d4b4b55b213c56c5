"""Port (interface) for the meal analysis service."""

from typing import TYPE_CHECKING, Protocol

from domain.upload.models import MealAnalysis

if TYPE_CHECKING:
    from application.upload.context import SessionContext


class IAnalysisClient(Protocol):
    """
    Interface for the AI meal analysis service.

    Call contract: exactly one terminal outcome per call (return or raise).
    """

    async def analyze(self, blob_name: str, context: "SessionContext") -> MealAnalysis:
        """
        Request the nutrition analysis of an uploaded image.

        Args:
            blob_name: Storage key returned by the upload transport
            context: Identity and trace context of the session

        Returns:
            MealAnalysis validated at the boundary

        Raises:
            QuotaExceededError: If the scan quota is used up (HTTP 429)
            AnalysisTimeoutError: If the service did not answer in time
            AnalysisError: If the provider failed or the result is malformed
            ApiRequestError: On any other non-2xx response
        """
        ...
