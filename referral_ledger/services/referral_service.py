"""Сервис реферальной программы: атрибуция регистраций и привязка заказов.

Этот модуль реализует запись реферальных связей:
- Атрибуция регистрации к реферальному коду (first attribution wins)
- Привязка заказа к pending-рефералу
- Списки рефералов (новые первыми)

Основной паттерн использования:
1. Сервис аккаунтов создаёт пользователя и присылает событие регистрации
2. handle_signup() пытается записать реферала и НИКОГДА не ломает регистрацию:
   ошибки атрибуции возвращаются кодом в AttributionResult
3. Когда приглашённый оформляет заказ - attach_order()

Пример использования:
    async with open_session() as session:
        referral_service = create_referral_service(session)
        result = await referral_service.handle_signup("ABCD2345", new_user_id)
        if not result.success:
            logger.info("Регистрация без реферала: %s", result.error)
"""

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.config.yaml_config import ReferralConfig, YamlConfig
from referral_ledger.core.exceptions import (
    AlreadyReferredError,
    InvalidStateError,
    OrderMismatchError,
    ReferralError,
    ReferralNotFoundError,
    SelfReferralError,
    UnknownCodeError,
    UserNotFoundError,
)
from referral_ledger.db.models.referral import Referral
from referral_ledger.db.repositories.referral_repo import ReferralRepository
from referral_ledger.db.repositories.user_repo import UserRepository
from referral_ledger.services.code_service import ReferralCodeService, normalize_code
from referral_ledger.utils.logging import get_logger

logger = get_logger(__name__)

# Код ошибки, когда программа выключена в config.yaml
REFERRAL_DISABLED = "referral_disabled"


@dataclass
class AttributionResult:
    """Результат атрибуции регистрации.

    Attributes:
        success: Создан ли реферал.
        referral_id: ID созданного реферала (если success=True).
        error: Код причины неудачи (если success=False):
            referral_disabled, unknown_code, self_referral,
            already_referred, user_not_found.
    """

    success: bool
    referral_id: int | None = None
    error: str | None = None


async def explain_rejected_transition(
    repo: ReferralRepository,
    referral_id: int,
    order_id: str | None,
    action: str,
) -> ReferralError:
    """Определить, почему условный UPDATE из pending не обновил строку.

    Args:
        repo: Репозиторий рефералов.
        referral_id: ID реферала.
        order_id: Заказ из события (None - без проверки заказа).
        action: Название операции для сообщения об ошибке.

    Returns:
        ReferralNotFoundError - записи нет,
        InvalidStateError - реферал уже в терминальном статусе,
        OrderMismatchError - реферал привязан к другому заказу.
    """
    referral = await repo.get_by_id(referral_id)
    if referral is None:
        return ReferralNotFoundError(referral_id)

    if referral.is_terminal:
        return InvalidStateError(referral_id, referral.status, action)

    return OrderMismatchError(referral_id, referral.order_id or "", order_id or "")


class ReferralService:
    """Сервис записи реферальных связей.

    Использует Dependency Injection - сессия и конфиг передаются в конструктор.

    Attributes:
        _session: Асинхронная сессия SQLAlchemy.
        _config: Конфигурация реферальной программы.
        _referral_repo: Репозиторий рефералов.
        _user_repo: Репозиторий пользователей.
        _code_service: Проверка формы кода до запроса к БД.
    """

    def __init__(self, session: AsyncSession, config: ReferralConfig) -> None:
        """Инициализировать сервис.

        Args:
            session: Асинхронная сессия SQLAlchemy.
            config: Конфигурация реферальной программы.
        """
        self._session = session
        self._config = config
        self._referral_repo = ReferralRepository(session)
        self._user_repo = UserRepository(session)
        self._code_service = ReferralCodeService(session, config)

    def is_enabled(self) -> bool:
        """Проверить, включена ли реферальная программа."""
        return self._config.enabled

    async def record_referral(
        self,
        referrer_code: str,
        referred_user_id: int,
    ) -> Referral:
        """Записать реферальную связь по коду пригласившего.

        Логика:
        1. Нормализуем код и находим его владельца
        2. Защита: нельзя пригласить себя
        3. Защита: пользователь уже был приглашён (first attribution wins)
        4. Создаём запись в статусе pending

        Проверка на шаге 3 - быстрый путь. От гонки двух одновременных
        регистраций защищает UNIQUE(referred_user_id): проигравший INSERT
        получает IntegrityError, который превращается в AlreadyReferredError.

        Args:
            referrer_code: Код из ссылки (регистр и разделители не важны).
            referred_user_id: ID нового пользователя.

        Returns:
            Созданный Referral в статусе pending.

        Raises:
            UnknownCodeError: Код никому не выдан.
            SelfReferralError: Пользователь использовал собственный код.
            UserNotFoundError: Приглашённый пользователь не существует.
            AlreadyReferredError: Пользователь уже был приглашён.
        """
        code = normalize_code(referrer_code)

        referrer = None
        if self._code_service.is_valid_code_shape(code):
            referrer = await self._user_repo.get_by_code(code)
        if referrer is None:
            logger.info("Неизвестный реферальный код: %r", code)
            raise UnknownCodeError(code)

        if referrer.id == referred_user_id:
            logger.warning("Попытка пригласить себя: user_id=%d", referred_user_id)
            raise SelfReferralError(referred_user_id)

        if await self._user_repo.get_by_id(referred_user_id) is None:
            raise UserNotFoundError(referred_user_id)

        existing = await self._referral_repo.get_by_referred_user_id(referred_user_id)
        if existing is not None:
            logger.warning(
                "Пользователь уже был приглашён: referred_user_id=%d, referral_id=%d",
                referred_user_id,
                existing.id,
            )
            raise AlreadyReferredError(referred_user_id)

        try:
            referral = await self._referral_repo.create(
                referrer_id=referrer.id,
                referred_user_id=referred_user_id,
                referral_code=code,
            )
        except IntegrityError:
            # Конкурентная регистрация успела первой
            await self._session.rollback()
            logger.warning(
                "Пользователь уже был приглашён (конкурентно): referred_user_id=%d",
                referred_user_id,
            )
            raise AlreadyReferredError(referred_user_id) from None

        logger.info(
            "Реферал записан: id=%d, referrer_id=%d, referred_user_id=%d",
            referral.id,
            referrer.id,
            referred_user_id,
        )
        return referral

    async def handle_signup(
        self,
        referral_code: str,
        referred_user_id: int,
    ) -> AttributionResult:
        """Обработать событие регистрации по реферальной ссылке.

        Best-effort: регистрация уже произошла, и неудачная атрибуция
        не должна её ломать. Доменные ошибки не пробрасываются.

        Args:
            referral_code: Код из ссылки.
            referred_user_id: ID нового пользователя.

        Returns:
            AttributionResult с ID реферала или кодом ошибки.
        """
        if not self._config.enabled:
            return AttributionResult(success=False, error=REFERRAL_DISABLED)

        try:
            referral = await self.record_referral(referral_code, referred_user_id)
        except ReferralError as e:
            return AttributionResult(success=False, error=e.code)
        except UserNotFoundError:
            logger.warning(
                "Событие регистрации для несуществующего пользователя: user_id=%d",
                referred_user_id,
            )
            return AttributionResult(success=False, error="user_not_found")

        return AttributionResult(success=True, referral_id=referral.id)

    async def attach_order(self, referral_id: int, order_id: str) -> Referral:
        """Привязать заказ к pending-рефералу.

        Повторная привязка того же заказа проходит без изменений.

        Args:
            referral_id: ID реферала.
            order_id: ID заказа из подсистемы заказов.

        Returns:
            Обновлённый Referral.

        Raises:
            ReferralNotFoundError: Реферал не существует.
            InvalidStateError: Реферал уже completed/cancelled.
            OrderMismatchError: К рефералу уже привязан другой заказ.
        """
        if not await self._referral_repo.attach_order(referral_id, order_id):
            error = await explain_rejected_transition(
                self._referral_repo, referral_id, order_id, "attach_order"
            )
            logger.warning("Заказ не привязан: %s", error)
            raise error

        referral = await self._referral_repo.get_by_id(referral_id)
        if referral is None:
            raise ReferralNotFoundError(referral_id)

        logger.info("Заказ привязан: referral_id=%d, order_id=%s", referral_id, order_id)
        return referral

    async def list_by_referrer(
        self,
        user_id: int,
        limit: int | None = None,
    ) -> list[Referral]:
        """Рефералы пользователя, новые первыми."""
        return await self._referral_repo.list_by_referrer(user_id, limit=limit)

    async def list_all(self, limit: int | None = None) -> list[Referral]:
        """Все рефералы системы, новые первыми."""
        return await self._referral_repo.list_all(limit=limit)


def create_referral_service(
    session: AsyncSession,
    yaml_config: YamlConfig | None = None,
) -> ReferralService:
    """Создать экземпляр ReferralService (factory function).

    Использует глобальный yaml_config если не передан явно.

    Args:
        session: Асинхронная сессия SQLAlchemy.
        yaml_config: YAML-конфигурация (опционально, берётся из глобальной).

    Returns:
        Настроенный экземпляр ReferralService.
    """
    if yaml_config is None:
        from referral_ledger.config.yaml_config import (
            yaml_config as global_yaml_config,
        )

        yaml_config = global_yaml_config

    return ReferralService(session=session, config=yaml_config.referral)
