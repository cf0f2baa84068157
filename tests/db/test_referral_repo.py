"""Тесты для ReferralRepository.

Модуль тестирует:
- create (UNIQUE по приглашённому, CHECK против самоприглашения)
- Условные переходы attach_order / mark_completed / mark_cancelled
- aggregate (счётчики по статусам и сумма бонусов)
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.db.models.referral import Referral, ReferralStatus
from referral_ledger.db.models.user import User
from referral_ledger.db.repositories.referral_repo import (
    ReferralCounts,
    ReferralRepository,
)

# ==============================================================================
# ТЕСТЫ create
# ==============================================================================


@pytest.mark.asyncio
async def test_create_pending_referral(
    db_session: AsyncSession,
    referrer: User,
    referred: User,
) -> None:
    """Тест: новый реферал в статусе pending, без бонуса и заказа."""
    referral = await ReferralRepository(db_session).create(
        referrer_id=referrer.id,
        referred_user_id=referred.id,
        referral_code="ACEG2345",
    )

    assert referral.id is not None
    assert referral.status == ReferralStatus.PENDING
    assert referral.is_terminal is False
    assert referral.bonus_amount is None
    assert referral.created_at is not None


@pytest.mark.asyncio
async def test_create_same_referred_user_twice_violates_unique(
    db_session: AsyncSession,
    make_user,
    referrer: User,
    referred: User,
) -> None:
    """Тест: один пользователь не может быть приглашён дважды."""
    other = await make_user(email="dave@example.com", referral_code="BCDF3456")
    repo = ReferralRepository(db_session)
    await repo.create(referrer.id, referred.id, "ACEG2345")

    with pytest.raises(IntegrityError):
        await repo.create(other.id, referred.id, "BCDF3456")


@pytest.mark.asyncio
async def test_create_self_referral_violates_check(
    db_session: AsyncSession,
    referrer: User,
) -> None:
    """Тест: CHECK-ограничение не даёт записать самоприглашение."""
    with pytest.raises(IntegrityError):
        await ReferralRepository(db_session).create(
            referrer.id, referrer.id, "ACEG2345"
        )


# ==============================================================================
# ТЕСТЫ переходов
# ==============================================================================


@pytest.mark.asyncio
async def test_mark_completed_only_from_pending(
    db_session: AsyncSession,
    make_referral,
    referrer: User,
) -> None:
    """Тест: второй mark_completed ничего не обновляет."""
    referral: Referral = await make_referral(referrer, email="carol@example.com")
    repo = ReferralRepository(db_session)

    first = await repo.mark_completed(referral.id, "ORD-1", Decimal("50.00"))
    second = await repo.mark_completed(referral.id, "ORD-1", Decimal("90.00"))

    assert first is True
    assert second is False
    stored = await repo.get_by_id(referral.id)
    assert stored is not None
    assert stored.status == ReferralStatus.COMPLETED
    assert stored.is_terminal is True
    assert stored.bonus_amount == Decimal("50.00")


@pytest.mark.asyncio
async def test_transition_checks_attached_order(
    db_session: AsyncSession,
    make_referral,
    referrer: User,
) -> None:
    """Тест: переход по чужому заказу не выполняется."""
    referral: Referral = await make_referral(referrer, email="carol@example.com")
    repo = ReferralRepository(db_session)
    assert await repo.attach_order(referral.id, "ORD-1") is True

    assert await repo.attach_order(referral.id, "ORD-2") is False
    assert await repo.mark_cancelled(referral.id, "order_failed", "ORD-2") is False
    assert await repo.mark_cancelled(referral.id, "order_failed", "ORD-1") is True


@pytest.mark.asyncio
async def test_mark_cancelled_without_order(
    db_session: AsyncSession,
    make_referral,
    referrer: User,
) -> None:
    """Тест: отмена без заказа (оператором) не проверяет заказ."""
    referral: Referral = await make_referral(referrer, email="carol@example.com")
    repo = ReferralRepository(db_session)
    await repo.attach_order(referral.id, "ORD-1")

    assert await repo.mark_cancelled(referral.id, "voided_by_operator") is True

    stored = await repo.get_by_id(referral.id)
    assert stored is not None
    assert stored.status == ReferralStatus.CANCELLED
    assert stored.order_id == "ORD-1"
    assert stored.bonus_amount is None


@pytest.mark.asyncio
async def test_transition_unknown_referral(db_session: AsyncSession) -> None:
    """Тест: переход несуществующего реферала возвращает False."""
    repo = ReferralRepository(db_session)

    assert await repo.mark_completed(999, "ORD-1", Decimal("1.00")) is False
    assert await repo.get_by_id(999) is None


# ==============================================================================
# ТЕСТЫ aggregate
# ==============================================================================


@pytest.mark.asyncio
async def test_aggregate_counts_by_status(
    db_session: AsyncSession,
    make_referral,
    referrer: User,
) -> None:
    """Тест: счётчики по статусам и сумма бонусов только по completed."""
    repo = ReferralRepository(db_session)
    await make_referral(referrer, email="p@example.com")
    done = await make_referral(referrer, email="c@example.com")
    gone = await make_referral(referrer, email="x@example.com")
    await repo.mark_completed(done.id, "ORD-1", Decimal("12.34"))
    await repo.mark_cancelled(gone.id, "order_failed")

    counts = await repo.aggregate(referrer.id)

    assert counts == ReferralCounts(
        total=3,
        pending=1,
        completed=1,
        cancelled=1,
        bonus_paid=Decimal("12.34"),
    )


@pytest.mark.asyncio
async def test_aggregate_empty(db_session: AsyncSession) -> None:
    """Тест: пустая таблица - нули."""
    counts = await ReferralRepository(db_session).aggregate()

    assert counts.total == 0
    assert counts.bonus_paid == Decimal("0.00")
