"""Factory для создания FastAPI приложения.

Функция create_app() создаёт и настраивает FastAPI app:
- Подключает все роутеры (events, referrals, admin, health)
- Настраивает CORS middleware
- Подключает lifecycle manager
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from referral_ledger.api.admin import router as admin_router
from referral_ledger.api.events import router as events_router
from referral_ledger.api.health import router as health_router
from referral_ledger.api.referrals import router as referrals_router
from referral_ledger.app.lifecycle import ApplicationLifecycle
from referral_ledger.config.settings import settings
from referral_ledger.config.yaml_config import yaml_config
from referral_ledger.utils.logging import get_logger

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """Создать и настроить FastAPI приложение.

    Returns:
        Настроенное FastAPI приложение готовое к запуску
    """
    lifecycle = ApplicationLifecycle(settings, yaml_config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """Управление жизненным циклом приложения.

        Args:
            app: FastAPI приложение

        Yields:
            None: Приложение работает между startup и shutdown
        """
        await lifecycle.startup(app)

        yield

        await lifecycle.shutdown()

    app = FastAPI(
        title=settings.app.title,
        description="Реферальная программа: коды, атрибуция, бонусы, статистика",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Порядок middleware в FastAPI - обратный: последний добавленный
    # выполняется первым. CORS должен обработать запрос до роутеров.
    if settings.cors.is_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors.allow_origins,
            allow_credentials=settings.cors.allow_credentials,
            allow_methods=settings.cors.allow_methods,
            allow_headers=settings.cors.allow_headers,
        )
        logger.info(
            "CORS включён для доменов: %s",
            ", ".join(settings.cors.allow_origins),
        )

    # Входящие события: /api/events/signup, /order-placed, /order-settlement
    app.include_router(events_router)

    # Сводка пользователя: /api/referrals/users/{user_id}/...
    app.include_router(referrals_router)

    # Админка: /api/admin/referrals, /stats, /{id}/void
    app.include_router(admin_router)

    # Health check API: /health
    app.include_router(health_router)

    return app
