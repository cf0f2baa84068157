"""API эндпоинты для административных операций.

- GET /api/admin/referrals?search= - все рефералы с поиском по подстроке
- GET /api/admin/referrals/stats?user_id= - статистика (глобальная без user_id)
- POST /api/admin/referrals/{referral_id}/void - ручное аннулирование

Аутентификация оператора - забота внешнего шлюза (reverse proxy / API gateway).
"""

from collections.abc import Callable
from typing import Annotated, Any, TypeVar

from fastapi import APIRouter, Depends, Query

from referral_ledger.api.dependencies import (
    get_lifecycle_service,
    get_query_service,
    get_stats_service,
    referral_http_error,
)
from referral_ledger.api.schemas import (
    ReferralListItemResponse,
    StatsResponse,
    TransitionResponse,
    VoidReferralRequest,
)
from referral_ledger.core.exceptions import ReferralError
from referral_ledger.services.lifecycle_service import (
    REASON_VOIDED,
    ReferralLifecycleService,
)
from referral_ledger.services.query_service import ReferralQueryService
from referral_ledger.services.stats_service import ReferralStatsService
from referral_ledger.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

THandler = TypeVar("THandler", bound=Callable[..., Any])


def typed_get(*args: Any, **kwargs: Any) -> Callable[[THandler], THandler]:
    """Типизированный wrapper для router.get."""
    return router.get(*args, **kwargs)


def typed_post(*args: Any, **kwargs: Any) -> Callable[[THandler], THandler]:
    """Типизированный wrapper для router.post."""
    return router.post(*args, **kwargs)


@typed_get("/referrals")
async def list_referrals(
    service: Annotated[ReferralQueryService, Depends(get_query_service)],
    search: Annotated[str | None, Query(max_length=255)] = None,
) -> list[ReferralListItemResponse]:
    """Все рефералы, новые первыми.

    Args:
        service: Сервис чтения.
        search: Подстрока (без учёта регистра) в email/имени участников
            или статусе. Пустая строка - без фильтра.

    Returns:
        Список рефералов с отображаемыми именами.
    """
    items = await service.list_referrals(search)
    return [ReferralListItemResponse.model_validate(item) for item in items]


@typed_get("/referrals/stats")
async def referral_stats(
    service: Annotated[ReferralStatsService, Depends(get_stats_service)],
    user_id: int | None = None,
) -> StatsResponse:
    """Статистика рефералов.

    При недоступности БД возвращается последний снимок с stale=true.

    Args:
        service: Сервис статистики.
        user_id: ID пригласившего (без параметра - вся система).
    """
    stats = await service.stats_for(user_id)
    return StatsResponse(
        user_id=user_id,
        total_referrals=stats.total_referrals,
        pending_referrals=stats.pending_referrals,
        completed_referrals=stats.completed_referrals,
        cancelled_referrals=stats.cancelled_referrals,
        total_bonus_paid=stats.total_bonus_paid,
        stale=stats.stale,
    )


@typed_post("/referrals/{referral_id}/void")
async def void_referral(
    referral_id: int,
    service: Annotated[ReferralLifecycleService, Depends(get_lifecycle_service)],
    body: VoidReferralRequest | None = None,
) -> TransitionResponse:
    """Аннулировать pending-реферал вручную.

    Для уже завершённого/отменённого реферала - 200 с applied=false.

    Raises:
        HTTPException: 404 - реферал не найден.
    """
    reason = body.reason if body and body.reason else REASON_VOIDED

    try:
        result = await service.void(referral_id, reason=reason)
    except ReferralError as e:
        raise referral_http_error(e) from e

    logger.info(
        "Оператор аннулировал реферал: id=%d, applied=%s", referral_id, result.applied
    )
    return TransitionResponse(
        referral_id=result.referral_id,
        applied=result.applied,
        status=str(result.status),
        bonus_amount=result.bonus_amount,
    )
