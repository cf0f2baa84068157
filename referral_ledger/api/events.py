"""Эндпоинты входящих событий.

Внешние подсистемы сообщают о событиях, которые двигают реферальную программу:
- POST /api/events/signup - регистрация по реферальной ссылке
- POST /api/events/order-placed - приглашённый оформил заказ
- POST /api/events/order-settlement - заказ оплачен или не оплачен

Важно:
- signup всегда отвечает 200: неудачная атрибуция не должна ломать регистрацию
- order-settlement идемпотентен: повторное событие → 200 с applied=false
"""

from collections.abc import Callable
from typing import Annotated, Any, TypeVar

from fastapi import APIRouter, Depends

from referral_ledger.api.dependencies import (
    get_lifecycle_service,
    get_referral_service,
    referral_http_error,
)
from referral_ledger.api.schemas import (
    AttributionResponse,
    OrderPlacedRequest,
    OrderSettlementRequest,
    ReferralResponse,
    SignupEventRequest,
    TransitionResponse,
)
from referral_ledger.core.exceptions import ReferralError
from referral_ledger.services.lifecycle_service import (
    ReferralLifecycleService,
    SettlementEvent,
)
from referral_ledger.services.referral_service import ReferralService
from referral_ledger.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])

THandler = TypeVar("THandler", bound=Callable[..., Any])


def typed_post(*args: Any, **kwargs: Any) -> Callable[[THandler], THandler]:
    """Типизированный wrapper для router.post."""
    return router.post(*args, **kwargs)


@typed_post("/signup")
async def signup_event(
    event: SignupEventRequest,
    service: Annotated[ReferralService, Depends(get_referral_service)],
) -> AttributionResponse:
    """Атрибутировать регистрацию к реферальному коду.

    Args:
        event: Код из ссылки и ID нового пользователя.
        service: Сервис атрибуции.

    Returns:
        AttributionResponse: success=True и referral_id,
        либо success=False и код причины.
    """
    result = await service.handle_signup(event.referral_code, event.referred_user_id)
    return AttributionResponse.model_validate(result)


@typed_post("/order-placed")
async def order_placed_event(
    event: OrderPlacedRequest,
    service: Annotated[ReferralService, Depends(get_referral_service)],
) -> ReferralResponse:
    """Привязать заказ к pending-рефералу.

    Raises:
        HTTPException: 404 - реферал не найден,
            409 - реферал не pending или привязан другой заказ.
    """
    try:
        referral = await service.attach_order(event.referral_id, event.order_id)
    except ReferralError as e:
        raise referral_http_error(e) from e

    return ReferralResponse.model_validate(referral)


@typed_post("/order-settlement")
async def order_settlement_event(
    event: OrderSettlementRequest,
    service: Annotated[ReferralLifecycleService, Depends(get_lifecycle_service)],
) -> TransitionResponse:
    """Обработать результат оплаты заказа.

    settled → реферал completed, начисляется бонус.
    failed → реферал cancelled.

    Raises:
        HTTPException: 404 - реферал не найден,
            409 - событие по чужому заказу.
    """
    settlement = SettlementEvent(
        order_id=event.order_id,
        referral_id=event.referral_id,
        amount=event.amount,
        outcome=event.outcome,
    )

    try:
        result = await service.handle_settlement(settlement)
    except ReferralError as e:
        raise referral_http_error(e) from e

    return TransitionResponse(
        referral_id=result.referral_id,
        applied=result.applied,
        status=str(result.status),
        bonus_amount=result.bonus_amount,
    )
