"""Репозиторий для работы с пользователями.

Содержит операции с таблицей users, нужные реферальной программе:
- Создание и поиск пользователя
- Чтение и атомарная установка реферального кода
- Отображаемая идентичность (email/имя) для админских списков
"""

from collections.abc import Iterable

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.db.models.user import UNKNOWN_IDENTITY, User


class UserRepository:
    """Репозиторий для работы с пользователями.

    Использует Dependency Injection - сессия передаётся в конструктор.

    Пример использования:
        async with open_session() as session:
            repo = UserRepository(session)
            code = await repo.get_code(user_id)
    """

    def __init__(self, session: AsyncSession) -> None:
        """Инициализировать репозиторий.

        Args:
            session: Асинхронная сессия SQLAlchemy.
        """
        self._session = session

    async def create(
        self,
        email: str | None = None,
        full_name: str | None = None,
        referral_code: str | None = None,
    ) -> User:
        """Создать пользователя.

        В продакшене пользователей создаёт сервис аккаунтов,
        метод нужен для импорта и тестов.

        Args:
            email: Email пользователя.
            full_name: Имя пользователя.
            referral_code: Уже выданный код (при импорте).

        Returns:
            Созданный объект User.

        Raises:
            IntegrityError: Если referral_code уже занят.
        """
        user = User(email=email, full_name=full_name, referral_code=referral_code)
        self._session.add(user)
        await self._session.commit()
        await self._session.refresh(user)
        return user

    async def get_by_id(self, user_id: int) -> User | None:
        """Найти пользователя по внутреннему ID.

        Args:
            user_id: Внутренний ID пользователя.

        Returns:
            User если найден, None если нет.
        """
        stmt = select(User).where(User.id == user_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_code(self, user_id: int) -> str | None:
        """Прочитать реферальный код пользователя напрямую из БД.

        Читает колонку, а не объект из identity map сессии - поэтому видит
        код, записанный конкурентным запросом.

        Args:
            user_id: Внутренний ID пользователя.

        Returns:
            Код или None, если код ещё не выдан (или пользователя нет).
        """
        stmt = select(User.referral_code).where(User.id == user_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_code(self, referral_code: str) -> User | None:
        """Найти владельца реферального кода.

        Args:
            referral_code: Нормализованный код (верхний регистр).

        Returns:
            User если код выдан, None если такого кода нет.
        """
        stmt = select(User).where(User.referral_code == referral_code)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def set_code_if_absent(self, user_id: int, referral_code: str) -> bool:
        """Атомарно назначить код, если у пользователя его ещё нет.

        Compare-and-set одним UPDATE:
            UPDATE users SET referral_code = :code
            WHERE id = :user_id AND referral_code IS NULL

        Из двух конкурентных запросов для одного пользователя
        строку обновит только один.

        Args:
            user_id: Внутренний ID пользователя.
            referral_code: Код-кандидат.

        Returns:
            True если код назначен этим вызовом,
            False если код уже был назначен (или пользователя нет).

        Raises:
            IntegrityError: Если кандидат уже выдан другому пользователю.
                Сессию нужно откатить и попробовать другой кандидат.
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.referral_code.is_(None))
            .values(referral_code=referral_code)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        await self._session.commit()

        # rowcount существует для UPDATE, но mypy не видит это
        return (getattr(result, "rowcount", 0) or 0) == 1

    async def get_display_identity(self, user_id: int) -> str:
        """Получить отображаемую идентичность пользователя.

        Args:
            user_id: Внутренний ID пользователя.

        Returns:
            Email, иначе имя, иначе "Unknown" (в том числе для удалённых).
        """
        identities = await self.get_display_identities([user_id])
        return identities.get(user_id, UNKNOWN_IDENTITY)

    async def get_display_identities(self, user_ids: Iterable[int]) -> dict[int, str]:
        """Получить идентичности сразу для многих пользователей (один запрос).

        Args:
            user_ids: ID пользователей (повторы допускаются).

        Returns:
            Словарь {user_id: identity}. Отсутствующих пользователей в нём нет.
        """
        ids = set(user_ids)
        if not ids:
            return {}

        stmt = select(User.id, User.email, User.full_name).where(User.id.in_(ids))
        result = await self._session.execute(stmt)
        return {
            row.id: row.email or row.full_name or UNKNOWN_IDENTITY
            for row in result.all()
        }
