"""Entrypoint: python -m relay_service"""
from __future__ import annotations

import uvicorn

from relay_service.config import settings
from relay_service.logging_config import setup_logging


def main() -> None:
    setup_logging(settings.LOG_LEVEL)
    uvicorn.run(
        "relay_service.app:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL,
        log_config=None,
    )


if __name__ == "__main__":
    main()
