"""Entrypoint: python -m church_chat"""
from __future__ import annotations

import logging

import uvicorn

from church_chat.api.middleware.correlation_id import RequestIdLogFilter
from church_chat.config import settings


def _configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s",
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(RequestIdLogFilter())


def main() -> None:
    _configure_logging()
    uvicorn.run(
        "church_chat.app:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
