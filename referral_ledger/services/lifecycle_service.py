"""Жизненный цикл реферала: завершение, отмена, аннулирование.

Переходы:
    pending → completed   заказ оплачен, начисляется бонус
    pending → cancelled   заказ не оплачен/возвращён или оператор аннулировал

completed и cancelled - терминальные. Повторное событие об оплате
того же заказа - штатная ситуация (подсистема заказов доставляет
события "хотя бы один раз"), поэтому переход из терминального статуса
не ошибка, а no-op: TransitionResult(applied=False).

Бонус рассчитывается один раз и пишется одним UPDATE вместе со статусом:
    UPDATE referrals
    SET status='completed', bonus_amount=:bonus, order_id=:order, completed_at=:now
    WHERE id=:id AND status='pending' AND (order_id IS NULL OR order_id=:order)
Читатель не может увидеть completed без бонуса, а два одновременных
события не могут начислить бонус дважды.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Literal

from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.config.yaml_config import ReferralConfig, YamlConfig
from referral_ledger.core.exceptions import InvalidStateError
from referral_ledger.db.models.referral import ReferralStatus
from referral_ledger.db.repositories.referral_repo import ReferralRepository
from referral_ledger.services.referral_service import explain_rejected_transition
from referral_ledger.utils.logging import get_logger

logger = get_logger(__name__)

# Причины отмены, которые пишутся в cancel_reason
REASON_ORDER_FAILED = "order_failed"
REASON_VOIDED = "voided_by_operator"

SettlementOutcome = Literal["settled", "failed"]


@dataclass(frozen=True)
class SettlementEvent:
    """Событие подсистемы заказов о результате оплаты.

    Attributes:
        order_id: ID заказа.
        referral_id: ID реферала, к которому относится заказ.
        amount: Сумма заказа в валюте программы.
        outcome: settled - оплачен, failed - не оплачен/возвращён.
    """

    order_id: str
    referral_id: int
    amount: Decimal
    outcome: SettlementOutcome


@dataclass(frozen=True)
class TransitionResult:
    """Результат попытки перехода.

    Attributes:
        referral_id: ID реферала.
        applied: True если переход выполнен этим вызовом,
            False если реферал уже был в терминальном статусе (no-op).
        status: Статус реферала после вызова.
        bonus_amount: Бонус (только для completed).
    """

    referral_id: int
    applied: bool
    status: ReferralStatus
    bonus_amount: Decimal | None = None


class ReferralLifecycleService:
    """Машина состояний реферала.

    Attributes:
        _session: Асинхронная сессия SQLAlchemy.
        _config: Конфигурация (процент бонуса и округление).
        _referral_repo: Репозиторий рефералов.
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

    def compute_bonus(self, amount: Decimal) -> Decimal:
        """Рассчитать бонус пригласившему.

        bonus = amount * bonus_percent / 100, округлённый до минимальной
        единицы валюты режимом bonus_rounding (по умолчанию ROUND_HALF_DOWN).

        Примеры (10%, ROUND_HALF_DOWN):
            500.00  → 50.00
            1000.25 → 100.025 → 100.02
            999.95  → 99.995  → 99.99

        Args:
            amount: Сумма заказа.

        Returns:
            Бонус с точностью до minor_unit.

        Raises:
            ValueError: Отрицательная сумма заказа.
        """
        amount = Decimal(str(amount)) if not isinstance(amount, Decimal) else amount
        if amount < 0:
            raise ValueError(f"Сумма заказа не может быть отрицательной: {amount}")

        raw = amount * self._config.bonus_percent / Decimal(100)
        return raw.quantize(self._config.minor_unit, rounding=self._config.bonus_rounding)

    async def _require_applied(
        self,
        applied: bool,
        referral_id: int,
        order_id: str | None,
        action: str,
    ) -> None:
        """Пробросить доменную ошибку, если условный UPDATE не сработал.

        Raises:
            ReferralNotFoundError, InvalidStateError, OrderMismatchError.
        """
        if applied:
            return
        raise await explain_rejected_transition(
            self._referral_repo, referral_id, order_id, action
        )

    def _noop(self, error: InvalidStateError) -> TransitionResult:
        """Повторное событие для терминального реферала - no-op."""
        logger.info("Переход пропущен (идемпотентно): %s", error)
        return TransitionResult(
            referral_id=error.referral_id,
            applied=False,
            status=ReferralStatus(error.status),
        )

    async def complete(
        self,
        referral_id: int,
        order_id: str,
        amount: Decimal,
    ) -> TransitionResult:
        """Завершить реферал после оплаты заказа.

        Args:
            referral_id: ID реферала.
            order_id: Оплаченный заказ.
            amount: Сумма заказа.

        Returns:
            TransitionResult (applied=False при повторном событии).

        Raises:
            ReferralNotFoundError: Реферал не существует.
            OrderMismatchError: К рефералу привязан другой заказ.
            ValueError: Отрицательная сумма.
        """
        bonus = self.compute_bonus(amount)
        applied = await self._referral_repo.mark_completed(referral_id, order_id, bonus)

        try:
            await self._require_applied(applied, referral_id, order_id, "complete")
        except InvalidStateError as e:
            return self._noop(e)

        logger.info(
            "Реферал завершён: id=%d, order_id=%s, amount=%s, bonus=%s %s",
            referral_id,
            order_id,
            amount,
            bonus,
            self._config.currency,
        )
        return TransitionResult(
            referral_id=referral_id,
            applied=True,
            status=ReferralStatus.COMPLETED,
            bonus_amount=bonus,
        )

    async def cancel(
        self,
        referral_id: int,
        order_id: str | None = None,
        reason: str = REASON_ORDER_FAILED,
    ) -> TransitionResult:
        """Отменить реферал (заказ не оплачен или возвращён до оплаты).

        Args:
            referral_id: ID реферала.
            order_id: Неоплаченный заказ (None - без проверки заказа).
            reason: Причина отмены.

        Returns:
            TransitionResult (applied=False если реферал уже терминальный).

        Raises:
            ReferralNotFoundError: Реферал не существует.
            OrderMismatchError: К рефералу привязан другой заказ.
        """
        applied = await self._referral_repo.mark_cancelled(
            referral_id, reason=reason, order_id=order_id
        )

        try:
            await self._require_applied(applied, referral_id, order_id, "cancel")
        except InvalidStateError as e:
            return self._noop(e)

        logger.info("Реферал отменён: id=%d, причина=%s", referral_id, reason)
        return TransitionResult(
            referral_id=referral_id,
            applied=True,
            status=ReferralStatus.CANCELLED,
        )

    async def void(
        self,
        referral_id: int,
        reason: str = REASON_VOIDED,
    ) -> TransitionResult:
        """Аннулировать реферал вручную (оператор).

        Args:
            referral_id: ID реферала.
            reason: Комментарий оператора.

        Returns:
            TransitionResult (applied=False если реферал уже терминальный).
        """
        return await self.cancel(referral_id, order_id=None, reason=reason)

    async def handle_settlement(self, event: SettlementEvent) -> TransitionResult:
        """Обработать событие об оплате заказа.

        Args:
            event: Событие из подсистемы заказов.

        Returns:
            Результат перехода.

        Raises:
            ValueError: Неизвестный outcome.
        """
        if event.outcome == "settled":
            return await self.complete(event.referral_id, event.order_id, event.amount)
        if event.outcome == "failed":
            return await self.cancel(
                event.referral_id,
                order_id=event.order_id,
                reason=REASON_ORDER_FAILED,
            )
        raise ValueError(f"Неизвестный результат оплаты: {event.outcome!r}")


def create_lifecycle_service(
    session: AsyncSession,
    yaml_config: YamlConfig | None = None,
) -> ReferralLifecycleService:
    """Создать экземпляр ReferralLifecycleService (factory function).

    Args:
        session: Асинхронная сессия SQLAlchemy.
        yaml_config: YAML-конфигурация (опционально, берётся из глобальной).

    Returns:
        Настроенный экземпляр ReferralLifecycleService.
    """
    if yaml_config is None:
        from referral_ledger.config.yaml_config import (
            yaml_config as global_yaml_config,
        )

        yaml_config = global_yaml_config

    return ReferralLifecycleService(session=session, config=yaml_config.referral)
