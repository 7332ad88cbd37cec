# src/garagehub/main.py
"""
Точка входа: запуск API через uvicorn.
"""

from __future__ import annotations

import uvicorn

from garagehub.api.app import create_app
from garagehub.config import settings


def run() -> None:
    """Запускает HTTP API на адресе из настроек."""
    uvicorn.run(
        create_app(),
        host=settings.deployment.API_HOST,
        port=settings.deployment.API_PORT,
        log_level=settings.logging.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
