"""Meal capture flow.

Drives the two external collaborators of a capture (upload transport and
analysis client) and reports their outcomes through the session driver:

1. Validate and select the image
2. Compress it when large
3. Upload (progress callbacks) -> complete_upload
4. Analyze -> complete_analysis

Any collaborator failure becomes exactly one `report_error` with a
user-facing message. Retries are user-initiated only.
"""

import asyncio
import logging
from typing import Optional

from domain.upload.core.entities.upload_session import UploadSession
from domain.upload.core.exceptions import InvalidImageError, QuotaExceededError
from domain.upload.core.value_objects.image_file import ImageFile
from domain.upload.core.value_objects.phase import Phase
from domain.upload.models import QuotaInfo
from domain.upload.ports.analysis_client import IAnalysisClient
from domain.upload.ports.upload_transport import IUploadTransport
from infrastructure.config import CaptureSettings
from infrastructure.imaging.compression import compress_image, should_compress
from metrics.upload_session import record_failure, time_stage

from .context import SessionContext
from .error_messages import ErrorCategory, categorize_error, to_user_message
from .session_driver import UploadSessionDriver
from .tasks import TaskHandle, TaskScope

logger = logging.getLogger(__name__)


class MealCaptureOrchestrator:
    """
    Orchestrate one meal capture view.

    Example:
        >>> flow = MealCaptureOrchestrator(
        ...     driver=UploadSessionDriver(),
        ...     transport=transport,
        ...     analysis_client=analysis,
        ...     context=SessionContext.anonymous(),
        ... )
        >>> session = await flow.capture(ImageFile.from_path("lunch.jpg"))
        >>> session.phase
        <Phase.DONE: 'done'>
    """

    def __init__(
        self,
        driver: UploadSessionDriver,
        transport: IUploadTransport,
        analysis_client: IAnalysisClient,
        context: SessionContext,
        settings: Optional[CaptureSettings] = None,
        scope: Optional[TaskScope] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            driver: Session driver of the view
            transport: Upload transport collaborator
            analysis_client: Analysis service collaborator
            context: Identity/trace context passed to collaborators
            settings: Capture settings (defaults if omitted)
            scope: Task scope for background runs (new one if omitted)
        """
        self._driver = driver
        self._transport = transport
        self._analysis = analysis_client
        self._context = context
        self._settings = settings or CaptureSettings()
        self._scope = scope or TaskScope()
        self._last_quota: Optional[QuotaInfo] = None

    @property
    def driver(self) -> UploadSessionDriver:
        return self._driver

    @property
    def last_quota(self) -> Optional[QuotaInfo]:
        """Quota reported by the last analysis or quota rejection."""
        return self._last_quota

    async def capture(self, image: ImageFile) -> UploadSession:
        """
        Select an image and run one upload + analysis attempt.

        Returns:
            Final session (done or error). Unchanged if a capture is
            already in flight.
        """
        if self._driver.session.is_busy:
            logger.warning(
                "Capture ignored while another one is in flight",
                extra={"session_id": self._driver.session_id, "phase": self._driver.phase.value},
            )
            return self._driver.session

        try:
            image.validate(self._settings.max_upload_size_bytes)
        except InvalidImageError as e:
            return self._fail(e)

        self._driver.select_file(image)
        return await self._run_attempt()

    async def retry(self) -> UploadSession:
        """Retry after an error with the file kept by the session."""
        session = self._driver.retry()
        if session.phase is not Phase.SELECTED:
            return session
        logger.info("Retrying capture", extra={"session_id": self._driver.session_id})
        return await self._run_attempt()

    def start(self, image: ImageFile) -> TaskHandle:
        """Run `capture` in the background; the handle can cancel it."""
        return self._scope.spawn(self.capture(image), name=f"capture-{self._driver.session_id}")

    def start_retry(self) -> TaskHandle:
        return self._scope.spawn(self.retry(), name=f"retry-{self._driver.session_id}")

    async def close(self) -> None:
        """Cancel in-flight work (view unmount)."""
        await self._scope.close()

    async def _run_attempt(self) -> UploadSession:
        session = self._driver.session
        if session.phase is not Phase.SELECTED or session.file is None:
            return session

        generation = self._driver.generation

        def on_progress(percent: int) -> None:
            # Callbacks of an abandoned upload must not move a newer one
            if self._driver.generation == generation:
                self._driver.report_progress(percent)

        try:
            image = await self._prepare(session.file)
            if self._driver.generation != generation:
                return self._abandoned("compression")

            self._driver.start_upload()
            with time_stage("upload"):
                uploaded = await self._transport.upload(image, self._context, on_progress)
            if not self._is_current(generation, Phase.UPLOADING):
                return self._abandoned("upload")
            self._driver.complete_upload(uploaded.url)

            self._driver.start_analysis()
            with time_stage("analysis"):
                analysis = await self._analysis.analyze(uploaded.blob_name, self._context)
            if not self._is_current(generation, Phase.ANALYZING):
                return self._abandoned("analysis")

            if analysis.quota is not None:
                self._last_quota = analysis.quota
            result = self._driver.complete_analysis(analysis.meal_analysis_id, analysis)

            logger.info(
                "Meal capture complete",
                extra={
                    "session_id": self._driver.session_id,
                    "meal_analysis_id": analysis.meal_analysis_id,
                    "total_protein": analysis.total_protein,
                    "correlation_id": self._context.trace.correlation_id,
                },
            )
            return result

        except asyncio.CancelledError:
            logger.info("Capture cancelled", extra={"session_id": self._driver.session_id})
            raise
        except Exception as e:
            if self._driver.generation != generation:
                logger.info(
                    "Failure of an abandoned attempt dropped",
                    extra={"session_id": self._driver.session_id, "error": str(e)},
                )
                return self._driver.session
            return self._fail(e)

    def _is_current(self, generation: int, phase: Phase) -> bool:
        return self._driver.generation == generation and self._driver.phase is phase

    async def _prepare(self, image: ImageFile) -> ImageFile:
        if not should_compress(image, self._settings.compression_threshold_mb):
            return image
        try:
            result = await asyncio.to_thread(
                compress_image,
                image,
                max_size_mb=self._settings.compression_max_size_mb,
            )
        except InvalidImageError:
            # Formats Pillow cannot decode (e.g. HEIC) go up unchanged
            logger.warning(
                "Compression skipped, uploading original",
                extra={"file_name": image.filename, "content_type": image.content_type},
            )
            return image
        return result.image

    def _abandoned(self, stage: str) -> UploadSession:
        logger.info(
            "Session changed during %s, dropping result",
            stage,
            extra={"session_id": self._driver.session_id, "phase": self._driver.phase.value},
        )
        return self._driver.session

    def _fail(self, exc: BaseException) -> UploadSession:
        message = to_user_message(exc)
        if isinstance(exc, QuotaExceededError):
            category = ErrorCategory.QUOTA
            if exc.quota is not None:
                self._last_quota = exc.quota
        elif isinstance(exc, InvalidImageError):
            category = ErrorCategory.IMAGE
        else:
            category = categorize_error(message)
        record_failure(category.value)

        logger.warning(
            "Meal capture failed",
            extra={
                "session_id": self._driver.session_id,
                "phase": self._driver.phase.value,
                "category": category.value,
                "error": str(exc),
                "error_type": type(exc).__name__,
                "correlation_id": self._context.trace.correlation_id,
            },
        )
        return self._driver.report_error(message)
