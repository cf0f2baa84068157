"""Общие фикстуры для всех тестов.

Этот файл содержит pytest-фикстуры, которые используются во всех тестах:
- Тестовая БД SQLite в памяти (для изоляции тестов)
- Файловая SQLite во временной папке (для конкурентных тестов:
  у каждой сессии своё соединение, как у параллельных запросов API)
- Конфигурация реферальной программы
- Фабрика пользователей
"""

from collections.abc import AsyncGenerator, Awaitable, Callable, Generator
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from referral_ledger.config.yaml_config import ReferralConfig, YamlConfig
from referral_ledger.db.models.referral import Referral
from referral_ledger.db.models.user import User
from referral_ledger.db.models_base import Base
from referral_ledger.db.repositories.referral_repo import ReferralRepository
from referral_ledger.db.repositories.user_repo import UserRepository
from referral_ledger.services.stats_service import snapshot_cache

UserFactory = Callable[..., Awaitable[User]]
ReferralFactory = Callable[..., Awaitable[Referral]]


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Создать тестовый движок SQLAlchemy.

    Использует SQLite в памяти (:memory:) для полной изоляции тестов.
    Каждый тест получает чистую БД без данных из предыдущих тестов.

    Yields:
        Асинхронный движок SQLAlchemy для тестовой БД.
    """
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Создать асинхронную сессию БД для теста.

    Args:
        test_engine: Тестовый движок SQLAlchemy из фикстуры test_engine.

    Yields:
        Асинхронная сессия для работы с тестовой БД.
    """
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def file_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Файловая SQLite БД для конкурентных тестов.

    In-memory БД живёт в одном соединении, поэтому настоящую конкуренцию
    (блокировки, UNIQUE при одновременной вставке) на ней не проверить.
    Здесь каждая сессия получает своё соединение.

    timeout - сколько писатель ждёт освобождения блокировки.

    Yields:
        Асинхронный движок для файла во временной папке.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'referrals.db'}",
        echo=False,
        connect_args={"timeout": 30},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def file_session_factory(file_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Фабрика сессий для файловой БД (по сессии на конкурентный запрос)."""
    return async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def referral_config() -> ReferralConfig:
    """Конфигурация реферальной программы по умолчанию (10%, ROUND_HALF_DOWN)."""
    return ReferralConfig()


@pytest.fixture
def yaml_config(referral_config: ReferralConfig) -> YamlConfig:
    """YAML-конфигурация с настройками реферальной программы из фикстуры."""
    return YamlConfig(referral=referral_config)


@pytest.fixture
def make_user(db_session: AsyncSession) -> UserFactory:
    """Фабрика пользователей в тестовой БД.

    Example:
        >>> alice = await make_user(email="alice@example.com")
    """

    async def _make_user(
        email: str | None = None,
        full_name: str | None = None,
        referral_code: str | None = None,
    ) -> User:
        return await UserRepository(db_session).create(
            email=email,
            full_name=full_name,
            referral_code=referral_code,
        )

    return _make_user


@pytest_asyncio.fixture
async def referrer(make_user: UserFactory) -> User:
    """Пригласивший пользователь с уже выданным кодом."""
    return await make_user(
        email="alice@example.com",
        full_name="Alice",
        referral_code="ACEG2345",
    )


@pytest_asyncio.fixture
async def referred(make_user: UserFactory) -> User:
    """Новый пользователь, пришедший по ссылке."""
    return await make_user(email="bob@example.com", full_name="Bob")


@pytest.fixture(autouse=True)
def clear_stats_snapshots() -> Generator[None, Any, None]:
    """Очистить общий кэш снимков статистики до и после теста."""
    snapshot_cache.clear()
    yield
    snapshot_cache.clear()


@pytest.fixture
def make_referral(db_session: AsyncSession, make_user: UserFactory) -> ReferralFactory:
    """Фабрика pending-рефералов: создаёт приглашённого и запись реферала.

    Example:
        >>> referral = await make_referral(referrer, email="carol@example.com")
    """

    async def _make_referral(
        referrer: User,
        email: str | None = None,
        full_name: str | None = None,
    ) -> Referral:
        invited = await make_user(email=email, full_name=full_name)
        return await ReferralRepository(db_session).create(
            referrer_id=referrer.id,
            referred_user_id=invited.id,
            referral_code=referrer.referral_code or "",
        )

    return _make_referral
