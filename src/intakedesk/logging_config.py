from __future__ import annotations

import logging

from intakedesk.config import get_settings

# Form parsing logs every multipart part at DEBUG.
QUIET_LOGGERS = ("multipart", "python_multipart")

_LOG_CONFIGURED = False


def configure_logging(level: str | None = None) -> None:
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    settings = get_settings()
    resolved = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.INFO))
    if not settings.is_development:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    _LOG_CONFIGURED = True
