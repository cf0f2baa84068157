"""Точка входа в приложение.

Команда запуска:
    uvicorn referral_ledger.main:app --host 0.0.0.0 --port 8000

Или через python:
    python -m referral_ledger
"""

import logging

from referral_ledger.app import create_app
from referral_ledger.config.settings import settings
from referral_ledger.utils.logging import setup_logging

# Настраиваем логирование при импорте модуля
setup_logging(
    level=settings.logging.level,
    timezone_name=settings.logging.timezone,
)

_logger = logging.getLogger(__name__)
_logger.info("Referral Ledger: логирование настроено, загрузка приложения")

app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.server.host, port=settings.server.port)
