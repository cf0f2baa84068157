"""Эндпоинты реферальной программы пользователя.

- GET /api/referrals/users/{user_id}/summary - сводка для дашборда
- POST /api/referrals/users/{user_id}/code - получить (выдать) реферальный код

Ссылку вида <base-url>?ref=<code> строит фронтенд.
"""

from collections.abc import Callable
from typing import Annotated, Any, TypeVar

from fastapi import APIRouter, Depends, HTTPException

from referral_ledger.api.dependencies import get_code_service, get_query_service
from referral_ledger.api.schemas import ReferralCodeResponse, UserSummaryResponse
from referral_ledger.core.exceptions import GenerationExhaustedError, UserNotFoundError
from referral_ledger.services.code_service import ReferralCodeService
from referral_ledger.services.query_service import ReferralQueryService
from referral_ledger.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/referrals", tags=["referrals"])

THandler = TypeVar("THandler", bound=Callable[..., Any])

# Сообщение для клиента, когда код не удалось выдать
TRY_AGAIN_DETAIL = {
    "error": GenerationExhaustedError.code,
    "message": "Could not generate a referral code, please try again",
}


def typed_get(*args: Any, **kwargs: Any) -> Callable[[THandler], THandler]:
    """Типизированный wrapper для router.get."""
    return router.get(*args, **kwargs)


def typed_post(*args: Any, **kwargs: Any) -> Callable[[THandler], THandler]:
    """Типизированный wrapper для router.post."""
    return router.post(*args, **kwargs)


@typed_get("/users/{user_id}/summary")
async def get_user_summary(
    user_id: int,
    service: Annotated[ReferralQueryService, Depends(get_query_service)],
) -> UserSummaryResponse:
    """Сводка: код, счётчики, бонусы и последние рефералы.

    Raises:
        HTTPException: 404 - пользователь не найден,
            503 - не удалось выдать код (повторите запрос).
    """
    try:
        summary = await service.get_user_summary(user_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    except GenerationExhaustedError as e:
        raise HTTPException(status_code=503, detail=TRY_AGAIN_DETAIL) from e

    return UserSummaryResponse.model_validate(summary)


@typed_post("/users/{user_id}/code")
async def ensure_referral_code(
    user_id: int,
    service: Annotated[ReferralCodeService, Depends(get_code_service)],
) -> ReferralCodeResponse:
    """Получить реферальный код пользователя (выдаётся при первом запросе).

    Raises:
        HTTPException: 404 - пользователь не найден,
            503 - не удалось выдать код (повторите запрос).
    """
    try:
        code = await service.ensure_code(user_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    except GenerationExhaustedError as e:
        raise HTTPException(status_code=503, detail=TRY_AGAIN_DETAIL) from e

    return ReferralCodeResponse(user_id=user_id, referral_code=code)
