"""Сервисы приложения.

Этот пакет содержит бизнес-логику реферальной программы.

Сервисы:
- ReferralCodeService - выдача уникальных реферальных кодов.
- ReferralService - атрибуция регистраций и привязка заказов.
- ReferralLifecycleService - переходы статуса и начисление бонуса.
- ReferralStatsService - статистика с деградацией на последний снимок.
- ReferralQueryService - сводки и списки для дашбордов.
"""

from referral_ledger.services.code_service import (
    ReferralCodeService,
    create_code_service,
    normalize_code,
)
from referral_ledger.services.lifecycle_service import (
    ReferralLifecycleService,
    SettlementEvent,
    TransitionResult,
    create_lifecycle_service,
)
from referral_ledger.services.query_service import (
    ReferralListItem,
    ReferralQueryService,
    UserReferralSummary,
    create_query_service,
    filter_referrals,
)
from referral_ledger.services.referral_service import (
    AttributionResult,
    ReferralService,
    create_referral_service,
)
from referral_ledger.services.stats_service import (
    ReferralStats,
    ReferralStatsService,
    StatsSnapshotCache,
    create_stats_service,
)

__all__ = [
    "AttributionResult",
    "ReferralCodeService",
    "ReferralLifecycleService",
    "ReferralListItem",
    "ReferralQueryService",
    "ReferralService",
    "ReferralStats",
    "ReferralStatsService",
    "SettlementEvent",
    "StatsSnapshotCache",
    "TransitionResult",
    "UserReferralSummary",
    "create_code_service",
    "create_lifecycle_service",
    "create_query_service",
    "create_referral_service",
    "create_stats_service",
    "filter_referrals",
    "normalize_code",
]
