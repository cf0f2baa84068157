"""Утилиты для работы с часовыми поясами.

Как это работает:
1. Время в базе данных хранится в UTC (универсальное время)
2. В логах время показывается в часовом поясе LOGGING__TIMEZONE
3. В API время отдаётся в UTC с явным смещением (+00:00)
"""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo


def get_timezone(timezone_name: str) -> ZoneInfo:
    """Получить объект часового пояса по имени.

    Args:
        timezone_name: Название часового пояса из базы IANA.
            Примеры: "Europe/Moscow", "UTC", "Asia/Kolkata".

    Returns:
        Объект ZoneInfo для указанного часового пояса.

    Raises:
        ZoneInfoNotFoundError: Если указанный часовой пояс не найден.
    """
    return ZoneInfo(timezone_name)


def utc_now() -> datetime:
    """Текущее время в UTC (timezone-aware)."""
    return datetime.now(UTC)


def ensure_utc_aware(dt: datetime) -> datetime:
    """Гарантировать, что datetime является timezone-aware в UTC.

    Если datetime naive (без tzinfo) - считаем его UTC и добавляем tzinfo.
    Если datetime уже aware - конвертируем в UTC.

    SQLite и PostgreSQL (колонки без timezone) возвращают naive datetime,
    но логически они хранят UTC. Эта функция делает это явным.

    Args:
        dt: Время для нормализации.

    Returns:
        Время с timezone=UTC.

    Example:
        >>> from datetime import datetime
        >>> ensure_utc_aware(datetime(2024, 1, 1, 12, 0, 0)).tzinfo
        datetime.timezone.utc
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)
