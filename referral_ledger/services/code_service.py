"""Сервис реферальных кодов.

Выдаёт каждому пользователю персональный код ровно один раз:
- Код генерируется лениво, при первом запросе
- Уже выданный код возвращается без изменений
- Два одновременных запроса для одного пользователя получат один и тот же код

Почему не "прочитать, потом записать":
Два конкурентных запроса оба увидят "кода нет" и запишут два разных кода.
Поэтому запись - это compare-and-set (UPDATE ... WHERE referral_code IS NULL),
а уникальность между пользователями гарантирует UNIQUE-ограничение в БД.

Пример использования:
    async with open_session() as session:
        code_service = create_code_service(session)
        code = await code_service.ensure_code(user_id)
"""

import secrets

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.config.yaml_config import ReferralConfig, YamlConfig
from referral_ledger.core.exceptions import GenerationExhaustedError, UserNotFoundError
from referral_ledger.db.repositories.user_repo import UserRepository
from referral_ledger.utils.logging import get_logger

logger = get_logger(__name__)

# Символы, которые пользователи вставляют в код при копировании из ссылки
CODE_SEPARATORS = (" ", "-", "_")


def normalize_code(value: str) -> str:
    """Привести введённый код к каноническому виду.

    Коды регистронезависимы: "abcd-2345" и "ABCD2345" - один код.

    Args:
        value: Код из ссылки или формы.

    Returns:
        Код в верхнем регистре без пробелов и разделителей.
    """
    normalized = value.strip().upper()
    for separator in CODE_SEPARATORS:
        normalized = normalized.replace(separator, "")
    return normalized


class ReferralCodeService:
    """Сервис выдачи реферальных кодов.

    Attributes:
        _session: Асинхронная сессия SQLAlchemy.
        _config: Конфигурация реферальной программы.
        _user_repo: Репозиторий пользователей (хранит код в профиле).
    """

    def __init__(self, session: AsyncSession, config: ReferralConfig) -> None:
        """Инициализировать сервис.

        Args:
            session: Асинхронная сессия SQLAlchemy.
            config: Конфигурация реферальной программы.
        """
        self._session = session
        self._config = config
        self._user_repo = UserRepository(session)

    def generate_candidate(self) -> str:
        """Сгенерировать случайный код-кандидат.

        secrets - криптографически стойкий генератор: коды нельзя угадать
        по соседним. При алфавите из 31 символа и длине 8 это ~8.5 * 10^11 кодов.

        Returns:
            Код длиной code_length из символов code_alphabet.
        """
        alphabet = self._config.code_alphabet
        return "".join(
            secrets.choice(alphabet) for _ in range(self._config.code_length)
        )

    def is_valid_code_shape(self, code: str) -> bool:
        """Проверить, что строка вообще может быть кодом.

        Позволяет отбросить мусор из ссылки, не обращаясь к БД.

        Args:
            code: Нормализованный код.

        Returns:
            True если длина и символы соответствуют конфигурации.
        """
        alphabet = self._config.code_alphabet
        return len(code) == self._config.code_length and all(
            char in alphabet for char in code
        )

    async def ensure_code(self, user_id: int) -> str:
        """Вернуть код пользователя, выдав его при необходимости.

        Логика:
        1. Код уже есть - возвращаем его (без записи в БД)
        2. Генерируем кандидата и пробуем назначить (compare-and-set)
        3. Кандидат занят другим пользователем (IntegrityError) - новый кандидат
        4. Код успел назначить конкурентный запрос - возвращаем его код

        Args:
            user_id: Внутренний ID пользователя.

        Returns:
            Реферальный код пользователя.

        Raises:
            UserNotFoundError: Пользователь не существует.
            GenerationExhaustedError: Все max_code_attempts кандидатов заняты.
        """
        existing = await self._user_repo.get_code(user_id)
        if existing:
            return existing

        if await self._user_repo.get_by_id(user_id) is None:
            raise UserNotFoundError(user_id)

        attempts = self._config.max_code_attempts
        for attempt in range(1, attempts + 1):
            candidate = self.generate_candidate()

            try:
                assigned = await self._user_repo.set_code_if_absent(user_id, candidate)
            except IntegrityError:
                # Кандидат уже выдан другому пользователю
                await self._session.rollback()
                logger.debug(
                    "Коллизия реферального кода: user_id=%d, попытка %d/%d",
                    user_id,
                    attempt,
                    attempts,
                )
                continue

            if assigned:
                logger.info("Выдан реферальный код: user_id=%d", user_id)
                return candidate

            # Условие referral_code IS NULL не выполнилось:
            # код уже назначил конкурентный запрос
            winner = await self._user_repo.get_code(user_id)
            if winner is None:
                # Пользователя удалили между проверкой и записью
                raise UserNotFoundError(user_id)
            return winner

        logger.error(
            "Не удалось выдать реферальный код: user_id=%d, попыток=%d. "
            "Увеличьте referral.code_length в config.yaml",
            user_id,
            attempts,
        )
        raise GenerationExhaustedError(user_id, attempts)


def create_code_service(
    session: AsyncSession,
    yaml_config: YamlConfig | None = None,
) -> ReferralCodeService:
    """Создать экземпляр ReferralCodeService (factory function).

    Args:
        session: Асинхронная сессия SQLAlchemy.
        yaml_config: YAML-конфигурация (опционально, берётся из глобальной).

    Returns:
        Настроенный экземпляр ReferralCodeService.
    """
    if yaml_config is None:
        from referral_ledger.config.yaml_config import (
            yaml_config as global_yaml_config,
        )

        yaml_config = global_yaml_config

    return ReferralCodeService(session=session, config=yaml_config.referral)
