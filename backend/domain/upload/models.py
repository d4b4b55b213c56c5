"""Request/response models for the ProteinLens capture API.

Typed contracts for the two collaborator calls (upload URL, meal analysis).
Payloads are validated once at the boundary and travel as these models
afterwards. JSON keys are camelCase; Python attributes are snake_case.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _ApiModel(BaseModel):
    """Base for wire models: camelCase aliases, immutable, extra keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    def to_json_dict(self) -> dict:
        """Serialize with wire (camelCase) keys, dropping unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


class UploadUrlRequest(_ApiModel):
    """Body of POST /api/upload-url."""

    file_name: str = Field(..., min_length=1)
    file_size: int = Field(..., gt=0)
    content_type: str = Field(..., min_length=1)


class UploadUrlResponse(_ApiModel):
    """SAS URL granted for a direct client-to-blob upload."""

    upload_url: str = Field(..., min_length=1)
    blob_name: str = Field(..., min_length=1)
    expires_in: int = Field(600, ge=0, description="Seconds until the SAS expires")


class AnalyzeRequest(_ApiModel):
    """Body of POST /api/meals/analyze."""

    blob_name: str = Field(..., min_length=1)


class FoodItem(_ApiModel):
    """One food detected on the plate."""

    name: str
    portion: str = ""
    protein: float = Field(..., ge=0)
    carbs: Optional[float] = Field(None, ge=0)
    fat: Optional[float] = Field(None, ge=0)


class QuotaInfo(_ApiModel):
    """Scan quota snapshot for the current plan."""

    used: int = Field(..., ge=0)
    limit: int = Field(..., ge=0)
    remaining: int = Field(..., ge=0)
    plan: str


class MealAnalysis(_ApiModel):
    """Nutrition breakdown produced by the analysis service.

    Example:
        >>> analysis = MealAnalysis.model_validate({
        ...     "mealAnalysisId": "meal-123",
        ...     "foods": [{"name": "Chicken", "portion": "150g", "protein": 45}],
        ...     "totalProtein": 45,
        ...     "confidence": "high",
        ...     "blobName": "user_1/photo.jpg",
        ...     "requestId": "req-1",
        ... })
        >>> analysis.total_protein
        45.0
    """

    meal_analysis_id: str = Field(..., min_length=1)
    foods: List[FoodItem] = Field(default_factory=list)
    total_protein: float = Field(..., ge=0)
    total_carbs: Optional[float] = Field(None, ge=0)
    total_fat: Optional[float] = Field(None, ge=0)
    confidence: Literal["high", "medium", "low"]
    notes: Optional[str] = None
    diet_feedback: Optional[str] = None
    share_url: Optional[str] = None
    share_id: Optional[str] = None
    blob_name: str
    request_id: str
    quota: Optional[QuotaInfo] = None


class ApiErrorBody(_ApiModel):
    """Error payload returned by the API on non-2xx responses."""

    error: str = ""
    request_id: Optional[str] = None
    message: Optional[str] = None
    quota: Optional[QuotaInfo] = None

    def best_message(self, fallback: str) -> str:
        """Prefer `message`, then `error`, then the caller's fallback."""
        return self.message or self.error or fallback
