"""Shared test fixtures.

Everything here is in-process: no network, no app server. HTTP
collaborators are exercised through `httpx.MockTransport`.
"""

from __future__ import annotations

import io
from typing import Callable, Iterator

import pytest
from PIL import Image

from application.upload.context import SessionContext
from domain.upload.core.value_objects.image_file import ImageFile
from domain.upload.models import MealAnalysis
from infrastructure.config import CaptureSettings
from infrastructure.tracing.trace_context import TraceContext
from infrastructure.upload.stub_providers import stub_analysis
from metrics.upload_session import reset_all


@pytest.fixture(autouse=True)
def _reset_metrics() -> Iterator[None]:
    """Isolate the global metrics registry between tests."""
    reset_all()
    yield
    reset_all()


def make_jpeg(width: int = 64, height: int = 48, color: tuple = (200, 80, 40)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="JPEG", quality=90)
    return buf.getvalue()


def make_png(width: int = 64, height: int = 48, alpha: bool = False) -> bytes:
    buf = io.BytesIO()
    mode = "RGBA" if alpha else "RGB"
    fill = (10, 120, 200, 128) if alpha else (10, 120, 200)
    Image.new(mode, (width, height), fill).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def jpeg_image() -> ImageFile:
    """Small valid JPEG photo."""
    return ImageFile(filename="lunch.jpg", content_type="image/jpeg", data=make_jpeg())


@pytest.fixture
def image_factory() -> Callable[..., ImageFile]:
    """Build arbitrary ImageFile values."""

    def _make(
        filename: str = "meal.jpg",
        content_type: str = "image/jpeg",
        data: bytes = b"\xff\xd8\xff\xe0fake-jpeg",
    ) -> ImageFile:
        return ImageFile(filename=filename, content_type=content_type, data=data)

    return _make


@pytest.fixture
def analysis_result() -> MealAnalysis:
    return stub_analysis("user_test/abc_lunch.jpg", request_id="req-1")


@pytest.fixture
def session_context() -> SessionContext:
    """Context with a fixed identity and trace."""
    trace = TraceContext(
        trace_id="0af7651916cd43dd8448eb211c80319c",
        span_id="b7ad6b7169203331",
    )
    return SessionContext(user_id="user_test", trace=trace)


@pytest.fixture
def settings() -> CaptureSettings:
    """Fast settings: no backoff sleeps between attempts."""
    return CaptureSettings(api_base_url="https://api.test", retry_backoff_s=0.0)


class _ImageBytes:
    jpeg = staticmethod(make_jpeg)
    png = staticmethod(make_png)


@pytest.fixture
def image_bytes() -> _ImageBytes:
    """Encoders for real JPEG/PNG payloads: `image_bytes.jpeg(w, h)`."""
    return _ImageBytes()
