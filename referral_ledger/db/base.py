"""Подключение к базе данных.

Engine и фабрика сессий создаются лениво при первом обращении, чтобы
импорт моделей и репозиториев в тестах не загружал настройки окружения.
Модели наследуются от Base из referral_ledger.db.models_base.

Все записи реферального учёта (выдача кода, атрибуция, переходы статуса)
опираются на ограничения БД. Для SQLite это значит, что конкурентные
писатели ждут блокировку файла до sqlite_busy_timeout секунд.
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from referral_ledger.config.constants import DATA_DIR
from referral_ledger.config.models import DatabaseSettings
from referral_ledger.db.models_base import Base

__all__ = [
    "Base",
    "build_engine",
    "dispose_engine",
    "get_async_session_factory",
    "get_engine",
    "get_session",
    "open_session",
]

_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def build_engine(database: DatabaseSettings) -> AsyncEngine:
    """Создать engine по настройкам БД (PostgreSQL или SQLite в DATA_DIR)."""
    url = database.url(DATA_DIR)
    connect_args: dict[str, Any] = {}
    if url.startswith("sqlite"):
        # Без timeout второй писатель сразу падает с "database is locked"
        connect_args["timeout"] = database.sqlite_busy_timeout
    return create_async_engine(url, pool_pre_ping=True, connect_args=connect_args)


def get_engine() -> AsyncEngine:
    """Получить engine процесса (создаётся при первом вызове)."""
    global _engine
    if _engine is None:
        from referral_ledger.config.settings import settings

        _engine = build_engine(settings.database)
    return _engine


def get_async_session_factory() -> async_sessionmaker[AsyncSession]:
    """Получить фабрику сессий.

    expire_on_commit=False: сервисы возвращают ORM-объекты после commit,
    и их атрибуты не должны перечитываться из БД вне сессии.
    """
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = async_sessionmaker(
            get_engine(), class_=AsyncSession, expire_on_commit=False
        )
    return _async_session_factory


async def dispose_engine() -> None:
    """Закрыть пул соединений (при остановке приложения)."""
    global _engine, _async_session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _async_session_factory = None


@asynccontextmanager
async def open_session() -> AsyncIterator[AsyncSession]:
    """Открыть сессию; при исключении незакоммиченные изменения откатываются.

    Пример:
        async with open_session() as session:
            stats = await create_stats_service(session).stats_for(user_id)
    """
    async with get_async_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Сессия на время HTTP-запроса (для FastAPI Depends)."""
    async with open_session() as session:
        yield session
