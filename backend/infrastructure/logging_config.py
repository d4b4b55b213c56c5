"""Logging setup for entry points.

Application code logs through stdlib `logging` (with `extra=`); the HTTP
adapters log through structlog. Both end up in the same stdlib handlers.
"""

import logging
from typing import Optional

import structlog

from infrastructure.config import get_log_level


def configure_logging(level: Optional[str] = None) -> None:
    """Configure stdlib logging and route structlog through it."""
    level_name = (level or get_log_level()).upper()
    numeric = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=numeric,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=["event"]),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
