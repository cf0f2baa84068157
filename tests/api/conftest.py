"""Фикстуры для тестов HTTP API.

Приложение собирается из роутеров без lifespan (миграции и движок
продакшена не нужны). Сессия и YAML-конфигурация подменяются через
dependency_overrides тестовыми из корневого conftest.
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.api import (
    admin_router,
    events_router,
    health_router,
    referrals_router,
)
from referral_ledger.api.dependencies import get_yaml_config
from referral_ledger.config.yaml_config import YamlConfig
from referral_ledger.db.base import get_session


@pytest.fixture
def app(db_session: AsyncSession, yaml_config: YamlConfig) -> FastAPI:
    """FastAPI приложение с тестовой БД.

    Args:
        db_session: Сессия тестовой БД.
        yaml_config: Конфигурация реферальной программы.

    Returns:
        FastAPI приложение со всеми роутерами.
    """
    app = FastAPI()
    app.include_router(health_router)
    app.include_router(events_router)
    app.include_router(referrals_router)
    app.include_router(admin_router)

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_yaml_config] = lambda: yaml_config
    return app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client для тестирования API.

    Args:
        app: FastAPI приложение.

    Yields:
        AsyncClient для отправки запросов.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
