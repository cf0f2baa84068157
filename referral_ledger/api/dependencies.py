"""Общие зависимости API.

- Фабрики сервисов для FastAPI Depends (сессия + YAML-конфигурация)
- Перевод доменных ошибок реферальной программы в HTTP-ответы

В тестах зависимости подменяются через app.dependency_overrides:
    app.dependency_overrides[get_session] = lambda: test_session
    app.dependency_overrides[get_yaml_config] = lambda: YamlConfig(...)
"""

from typing import Annotated

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.config.yaml_config import YamlConfig
from referral_ledger.core.exceptions import ReferralError, ReferralNotFoundError
from referral_ledger.db.base import get_session
from referral_ledger.services.code_service import (
    ReferralCodeService,
    create_code_service,
)
from referral_ledger.services.lifecycle_service import (
    ReferralLifecycleService,
    create_lifecycle_service,
)
from referral_ledger.services.query_service import (
    ReferralQueryService,
    create_query_service,
)
from referral_ledger.services.referral_service import (
    ReferralService,
    create_referral_service,
)
from referral_ledger.services.stats_service import (
    ReferralStatsService,
    create_stats_service,
)

SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_yaml_config() -> YamlConfig:
    """Текущая YAML-конфигурация (глобальная, загружена при старте)."""
    from referral_ledger.config.yaml_config import yaml_config

    return yaml_config


YamlConfigDep = Annotated[YamlConfig, Depends(get_yaml_config)]


def get_code_service(
    session: SessionDep, config: YamlConfigDep
) -> ReferralCodeService:
    """Сервис реферальных кодов на сессии запроса."""
    return create_code_service(session, config)


def get_referral_service(session: SessionDep, config: YamlConfigDep) -> ReferralService:
    """Сервис атрибуции на сессии запроса."""
    return create_referral_service(session, config)


def get_lifecycle_service(
    session: SessionDep, config: YamlConfigDep
) -> ReferralLifecycleService:
    """Сервис жизненного цикла на сессии запроса."""
    return create_lifecycle_service(session, config)


def get_stats_service(session: SessionDep) -> ReferralStatsService:
    """Сервис статистики на сессии запроса."""
    return create_stats_service(session)


def get_query_service(
    session: SessionDep, config: YamlConfigDep
) -> ReferralQueryService:
    """Сервис чтения на сессии запроса."""
    return create_query_service(session, config)


def referral_http_error(error: ReferralError) -> HTTPException:
    """Перевести доменную ошибку в HTTPException.

    ReferralNotFoundError → 404, остальные (конфликт состояния) → 409.
    В detail уходит стабильный код ошибки для клиентов.

    Args:
        error: Доменная ошибка.

    Returns:
        HTTPException для raise в эндпоинте.
    """
    status_code = 404 if isinstance(error, ReferralNotFoundError) else 409
    return HTTPException(
        status_code=status_code,
        detail={"error": error.code, "message": error.message},
    )
