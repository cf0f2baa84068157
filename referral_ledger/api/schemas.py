"""Pydantic-схемы запросов и ответов API.

Суммы (Decimal) сериализуются в JSON строкой ("50.00"),
чтобы не терять точность на стороне клиента.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# ВХОДЯЩИЕ СОБЫТИЯ
# =============================================================================


class SignupEventRequest(BaseModel):
    """Событие регистрации по реферальной ссылке."""

    referral_code: str = Field(min_length=1, max_length=64)
    referred_user_id: int = Field(gt=0)


class OrderPlacedRequest(BaseModel):
    """Событие оформления заказа приглашённым."""

    referral_id: int = Field(gt=0)
    order_id: str = Field(min_length=1, max_length=255)


class OrderSettlementRequest(BaseModel):
    """Событие о результате оплаты заказа."""

    order_id: str = Field(min_length=1, max_length=255)
    referral_id: int = Field(gt=0)
    amount: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    outcome: Literal["settled", "failed"]


class VoidReferralRequest(BaseModel):
    """Ручное аннулирование реферала оператором."""

    reason: str | None = Field(default=None, max_length=500)


# =============================================================================
# ОТВЕТЫ
# =============================================================================


class AttributionResponse(BaseModel):
    """Результат атрибуции. success=False не ошибка регистрации."""

    model_config = ConfigDict(from_attributes=True)

    success: bool
    referral_id: int | None = None
    error: str | None = None


class ReferralResponse(BaseModel):
    """Реферал (без отображаемых имён)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    referrer_id: int
    referred_user_id: int
    status: str
    order_id: str | None
    bonus_amount: Decimal | None
    created_at: datetime


class TransitionResponse(BaseModel):
    """Результат перехода статуса. applied=False - повторное событие."""

    model_config = ConfigDict(from_attributes=True)

    referral_id: int
    applied: bool
    status: str
    bonus_amount: Decimal | None = None


class ReferralCodeResponse(BaseModel):
    """Реферальный код пользователя."""

    user_id: int
    referral_code: str


class RecentReferralResponse(BaseModel):
    """Реферал в сводке пользователя."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    referred_identity: str
    status: str
    bonus_amount: Decimal | None
    created_at: datetime
    order_id: str | None


class UserSummaryResponse(BaseModel):
    """Сводка реферальной программы пользователя."""

    model_config = ConfigDict(from_attributes=True)

    referral_code: str
    total_referrals: int
    pending_referrals: int
    completed_referrals: int
    cancelled_referrals: int
    total_bonus: Decimal
    stats_stale: bool
    recent_referrals: list[RecentReferralResponse]


class ReferralListItemResponse(BaseModel):
    """Строка глобального списка рефералов."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    referrer_identity: str
    referred_identity: str
    status: str
    bonus_amount: Decimal | None
    created_at: datetime
    order_id: str | None


class StatsResponse(BaseModel):
    """Статистика рефералов (пользователя или глобальная)."""

    model_config = ConfigDict(from_attributes=True)

    user_id: int | None = None
    total_referrals: int
    pending_referrals: int
    completed_referrals: int
    cancelled_referrals: int
    total_bonus_paid: Decimal
    stale: bool
