"""Централизованные исключения приложения.

Этот модуль содержит ВСЕ кастомные исключения проекта.
Централизация исключений обеспечивает:
- Единый источник правды для всех типов ошибок
- Единообразную иерархию исключений
- Удобный импорт: `from referral_ledger.core.exceptions import SomeError`

Организация исключений по доменам:
- Database: Ошибки работы с БД
- Referral: Ошибки реферальной программы (коды, атрибуция, статусы)
"""

from typing_extensions import override

# =============================================================================
# DATABASE EXCEPTIONS
# =============================================================================
# Исключения для работы с базой данных.
# Иерархия: DatabaseError -> UserNotFoundError
# =============================================================================


class DatabaseError(Exception):
    """Базовое исключение для ошибок работы с БД.

    Используется как родительский класс для всех ошибок БД.
    Может быть потенциально восстановимым (retry) в зависимости от причины.
    """

    def __init__(self, message: str, retryable: bool = False) -> None:
        """Создать исключение БД.

        Args:
            message: Описание ошибки.
            retryable: Можно ли повторить операцию (True для временных сбоев).
        """
        super().__init__(message)
        self.message = message
        self.retryable = retryable


class UserNotFoundError(DatabaseError):
    """Пользователь не найден в базе данных.

    Невосстановимая ошибка - профиль создаётся внешним сервисом аккаунтов,
    и до его создания с пользователем ничего делать нельзя.
    """

    def __init__(self, user_id: int) -> None:
        """Создать исключение о ненайденном пользователе.

        Args:
            user_id: Внутренний ID пользователя.
        """
        super().__init__(
            f"Пользователь с id={user_id} не найден в БД",
            retryable=False,
        )
        self.user_id = user_id


# =============================================================================
# REFERRAL EXCEPTIONS
# =============================================================================
# Исключения реферальной программы.
# У каждого исключения есть стабильный code - он уходит в API-ответы
# и в результаты best-effort операций (AttributionResult.error).
# =============================================================================


class ReferralError(Exception):
    """Базовое исключение реферальной программы.

    Attributes:
        message: Человекочитаемое описание ошибки.
        code: Машиночитаемый код ошибки (snake_case).
    """

    code = "referral_error"

    def __init__(self, message: str) -> None:
        """Создать исключение ReferralError.

        Args:
            message: Описание ошибки.
        """
        super().__init__(message)
        self.message = message

    @override
    def __str__(self) -> str:
        """Строковое представление ошибки."""
        return f"[{self.code}] {self.message}"


class GenerationExhaustedError(ReferralError):
    """Не удалось подобрать уникальный реферальный код.

    Все попытки генерации упёрлись в уже выданные коды. На практике
    не должно происходить - сигнал, что пространство кодов нужно расширить
    (увеличить referral.code_length в config.yaml).
    """

    code = "generation_exhausted"

    def __init__(self, user_id: int, attempts: int) -> None:
        """Создать исключение.

        Args:
            user_id: Пользователь, для которого генерировался код.
            attempts: Сколько кандидатов было перепробовано.
        """
        super().__init__(
            f"Не удалось сгенерировать уникальный код для user_id={user_id} "
            f"за {attempts} попыток"
        )
        self.user_id = user_id
        self.attempts = attempts


class UnknownCodeError(ReferralError):
    """Реферальный код не выдан ни одному пользователю."""

    code = "unknown_code"

    def __init__(self, referral_code: str) -> None:
        """Создать исключение.

        Args:
            referral_code: Код из ссылки (уже нормализованный).
        """
        super().__init__(f"Реферальный код не найден: {referral_code!r}")
        self.referral_code = referral_code


class SelfReferralError(ReferralError):
    """Попытка пригласить самого себя."""

    code = "self_referral"

    def __init__(self, user_id: int) -> None:
        """Создать исключение.

        Args:
            user_id: Пользователь, который использовал собственный код.
        """
        super().__init__(f"Пользователь user_id={user_id} не может пригласить себя")
        self.user_id = user_id


class AlreadyReferredError(ReferralError):
    """Пользователь уже привязан к пригласившему (first attribution wins)."""

    code = "already_referred"

    def __init__(self, referred_user_id: int) -> None:
        """Создать исключение.

        Args:
            referred_user_id: Повторно атрибутируемый пользователь.
        """
        super().__init__(
            f"Пользователь user_id={referred_user_id} уже был приглашён"
        )
        self.referred_user_id = referred_user_id


class ReferralNotFoundError(ReferralError):
    """Реферал с указанным ID не существует."""

    code = "referral_not_found"

    def __init__(self, referral_id: int) -> None:
        """Создать исключение.

        Args:
            referral_id: ID реферала.
        """
        super().__init__(f"Реферал не найден: id={referral_id}")
        self.referral_id = referral_id


class InvalidStateError(ReferralError):
    """Переход недопустим из текущего статуса реферала.

    Для переходов жизненного цикла это ожидаемая ситуация
    (повторное событие об оплате) и обрабатывается как no-op.
    """

    code = "invalid_state"

    def __init__(self, referral_id: int, status: str, action: str) -> None:
        """Создать исключение.

        Args:
            referral_id: ID реферала.
            status: Текущий статус реферала.
            action: Операция, которую пытались выполнить.
        """
        super().__init__(
            f"Нельзя выполнить '{action}' для реферала id={referral_id} "
            f"в статусе {status}"
        )
        self.referral_id = referral_id
        self.status = status
        self.action = action


class OrderMismatchError(ReferralError):
    """Событие пришло по заказу, который не привязан к этому рефералу."""

    code = "order_mismatch"

    def __init__(self, referral_id: int, expected: str, actual: str) -> None:
        """Создать исключение.

        Args:
            referral_id: ID реферала.
            expected: Заказ, уже привязанный к рефералу.
            actual: Заказ из пришедшего события.
        """
        super().__init__(
            f"Реферал id={referral_id} привязан к заказу {expected!r}, "
            f"а событие пришло по заказу {actual!r}"
        )
        self.referral_id = referral_id
        self.expected = expected
        self.actual = actual
