#!/usr/bin/env python
"""Capture a meal photo from the command line.

Uploads PHOTO, requests its analysis and prints every phase change followed
by the analysis result as JSON.

Usage:
    python backend/scripts/capture_meal.py lunch.jpg
    python backend/scripts/capture_meal.py lunch.jpg --stub
    python backend/scripts/capture_meal.py lunch.jpg --api-url https://api.example.com --retries 2

Exit codes:
    0 analysis done
    1 capture ended in error
    2 bad arguments or unreadable photo
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
# Ensure backend root (BASE_DIR) is on sys.path for the layered packages
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from application.upload.capture_flow import MealCaptureOrchestrator  # noqa: E402
from application.upload.context import SessionContext  # noqa: E402
from application.upload.session_driver import UploadSessionDriver  # noqa: E402
from domain.upload.core.entities.upload_session import UploadSession  # noqa: E402
from domain.upload.core.exceptions import InvalidImageError  # noqa: E402
from domain.upload.core.value_objects.image_file import ImageFile  # noqa: E402
from domain.upload.core.value_objects.phase import Phase  # noqa: E402
from infrastructure.config import CaptureSettings  # noqa: E402
from infrastructure.logging_config import configure_logging  # noqa: E402
from infrastructure.upload.factory import (  # noqa: E402
    create_analysis_client,
    create_upload_transport,
)

EXIT_DONE = 0
EXIT_ERROR = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Upload a meal photo and print its protein analysis.")
    parser.add_argument("photo", help="Path to a JPEG, PNG or HEIC photo")
    parser.add_argument("--api-url", dest="api_url", default=None, help="API base URL (overrides PROTEINLENS_API_URL)")
    parser.add_argument("--user-id", dest="user_id", default=None, help="User id (anonymous id if omitted)")
    parser.add_argument("--stub", action="store_true", help="Use in-memory collaborators, no network")
    parser.add_argument("--retries", type=int, default=0, help="Retries after an error (default: 0)")
    parser.add_argument("--log-level", dest="log_level", default=None)
    return parser


def _print_phase(session: UploadSession) -> None:
    if session.phase is Phase.UPLOADING:
        print(f"[{session.phase.value}] {session.progress}%")
    elif session.phase is Phase.ERROR:
        print(f"[{session.phase.value}] {session.error_message}")
    else:
        print(f"[{session.phase.value}]")


async def run_capture(
    image: ImageFile,
    settings: CaptureSettings,
    context: SessionContext,
    mode: Optional[str] = None,
    retries: int = 0,
) -> UploadSession:
    """Run one capture (plus up to `retries` retries) and return the final session."""
    driver = UploadSessionDriver()
    driver.subscribe(_print_phase)

    async with create_upload_transport(settings, mode) as transport, create_analysis_client(
        settings, mode
    ) as analysis:
        flow = MealCaptureOrchestrator(
            driver=driver,
            transport=transport,
            analysis_client=analysis,
            context=context,
            settings=settings,
        )
        try:
            session = await flow.capture(image)
            attempts_left = retries
            while session.phase is Phase.ERROR and session.has_file and attempts_left > 0:
                attempts_left -= 1
                session = await flow.retry()
        finally:
            await flow.close()
    return session


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv(BASE_DIR / ".env")
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.retries < 0:
        print("--retries must be >= 0", file=sys.stderr)
        return EXIT_USAGE

    try:
        image = ImageFile.from_path(args.photo)
    except (OSError, InvalidImageError) as e:
        print(f"Cannot read photo {args.photo}: {e}", file=sys.stderr)
        return EXIT_USAGE

    settings = CaptureSettings.from_env(api_base_url=args.api_url)
    context = SessionContext.for_user(args.user_id) if args.user_id else SessionContext.anonymous()
    mode = "stub" if args.stub else None

    session = asyncio.run(run_capture(image, settings, context, mode=mode, retries=args.retries))

    if session.phase is not Phase.DONE or session.analysis_result is None:
        return EXIT_ERROR

    print(json.dumps(session.analysis_result.to_json_dict(), indent=2))
    return EXIT_DONE


if __name__ == "__main__":
    sys.exit(main())
