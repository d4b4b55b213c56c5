"""Stub collaborators for tests and offline demos.

Deterministic, in-memory implementations of IUploadTransport and
IAnalysisClient. Failures can be scripted to exercise the error paths.
"""

import asyncio
import hashlib
from typing import Dict, List, Optional

from application.upload.context import SessionContext
from domain.upload.core.value_objects.image_file import ImageFile
from domain.upload.core.value_objects.uploaded_image import UploadedImage
from domain.upload.models import FoodItem, MealAnalysis
from domain.upload.ports.upload_transport import ProgressCallback

STUB_BLOB_BASE_URL = "https://stub.blob.local/meal-images"


class StubUploadTransport:
    """
    Stub implementation of IUploadTransport.

    Stores uploaded payloads in `blobs`, reports progress in `steps`
    increments and raises `fail_with` (once per queued error) if set.
    """

    def __init__(self, steps: int = 4, delay_s: float = 0.0) -> None:
        self.steps = max(1, steps)
        self.delay_s = delay_s
        self.blobs: Dict[str, bytes] = {}
        self.failures: List[BaseException] = []

    async def __aenter__(self) -> "StubUploadTransport":
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        return None

    def fail_next(self, error: BaseException) -> None:
        """Queue an error for the next upload call."""
        self.failures.append(error)

    async def upload(
        self,
        image: ImageFile,
        context: SessionContext,
        on_progress: ProgressCallback,
    ) -> UploadedImage:
        for step in range(1, self.steps + 1):
            if self.delay_s:
                await asyncio.sleep(self.delay_s)
            on_progress(step * 100 // self.steps)
            if self.failures and step == self.steps // 2 + 1:
                raise self.failures.pop(0)

        digest = hashlib.sha256(image.data).hexdigest()[:12]
        blob_name = f"{context.user_id}/{digest}_{image.filename}"
        self.blobs[blob_name] = image.data
        return UploadedImage(url=f"{STUB_BLOB_BASE_URL}/{blob_name}", blob_name=blob_name)


class StubAnalysisClient:
    """
    Stub implementation of IAnalysisClient.

    Always recognizes the same grilled-chicken plate; the result id is
    derived from the blob name so repeated runs are reproducible.
    """

    def __init__(self, delay_s: float = 0.0) -> None:
        self.delay_s = delay_s
        self.failures: List[BaseException] = []
        self.calls: List[str] = []

    async def __aenter__(self) -> "StubAnalysisClient":
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        return None

    def fail_next(self, error: BaseException) -> None:
        self.failures.append(error)

    async def analyze(self, blob_name: str, context: SessionContext) -> MealAnalysis:
        self.calls.append(blob_name)
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.failures:
            raise self.failures.pop(0)
        return stub_analysis(blob_name)


def stub_analysis(blob_name: str, request_id: Optional[str] = None) -> MealAnalysis:
    digest = hashlib.sha256(blob_name.encode()).hexdigest()[:12]
    return MealAnalysis(
        meal_analysis_id=f"meal_{digest}",
        foods=[
            FoodItem(name="Grilled chicken breast", portion="150g", protein=46.5, carbs=0, fat=5.4),
            FoodItem(name="Brown rice", portion="1 cup", protein=5.0, carbs=45.0, fat=1.8),
            FoodItem(name="Broccoli", portion="80g", protein=2.2, carbs=5.3, fat=0.3),
        ],
        total_protein=53.7,
        total_carbs=50.3,
        total_fat=7.5,
        confidence="high",
        notes="Stub analysis",
        blob_name=blob_name,
        request_id=request_id or f"req_{digest}",
    )
