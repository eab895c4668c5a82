"""
MODULE: query_registry.core.timeouts
RESPONSIBILITY: Derive server-side execution ceilings from caller timeouts.
ALLOWED: Standard library only.
FORBIDDEN: Database access, logging side effects.
ERRORS: ValueError (negative timeout).

Бюджет таймаутов для операций хранилища

Клиентский дедлайн ограничивает всё время вызова, включая сеть и
декодирование. Серверный потолок (statement_timeout) берётся как 80%
от клиентского, чтобы сервер не выполнял запрос до момента, когда
клиент уже перестал ждать ответ.

Все значения в миллисекундах. 0 означает "без ограничения".
"""

from dataclasses import dataclass
from typing import Optional

UNBOUNDED = 0

# Бюджет вызова, дедлайн которого уже истёк
EXPIRED_MS = 1

# Доля клиентского таймаута, отдаваемая серверу: 4/5 = 0.8
_SERVER_SHARE_NUMERATOR = 4
_SERVER_SHARE_DENOMINATOR = 5


def max_execution_time_ms(timeout_ms: int) -> int:
    """
    Серверный потолок выполнения: ceil(timeout_ms * 0.8)

    Считается в целых числах, поэтому результат точен для любого timeout_ms.
    Для 0 возвращает 0 (UNBOUNDED), а не близкое к нулю значение.

    Args:
        timeout_ms: Клиентский таймаут в миллисекундах (0 - без дедлайна)

    Returns:
        Потолок выполнения на сервере в миллисекундах

    Raises:
        ValueError: Если timeout_ms отрицательный
    """
    if timeout_ms < 0:
        raise ValueError(f"Таймаут не может быть отрицательным: {timeout_ms}")
    numerator = timeout_ms * _SERVER_SHARE_NUMERATOR
    return (numerator + _SERVER_SHARE_DENOMINATOR - 1) // _SERVER_SHARE_DENOMINATOR


def seconds_to_ms(timeout: Optional[float]) -> int:
    """
    Перевод таймаута вызывающего (секунды, None) в миллисекунды

    None и 0 означают "без дедлайна". Отрицательное значение означает, что
    дедлайн уже прошёл: операция получает минимальный бюджет EXPIRED_MS.
    """
    if timeout is None or timeout == 0:
        return UNBOUNDED
    if timeout < 0:
        return EXPIRED_MS
    ms = int(timeout * 1000)
    if ms < timeout * 1000:
        ms += 1
    return ms


@dataclass(frozen=True)
class OperationBudget:
    """
    Бюджет одной операции

    Attributes:
        client_timeout_ms: Дедлайн вызова (после него запрос отменяется клиентом)
        server_timeout_ms: statement_timeout для сервера
    """
    client_timeout_ms: int
    server_timeout_ms: int

    @property
    def is_bounded(self) -> bool:
        return self.client_timeout_ms != UNBOUNDED

    @property
    def client_timeout_seconds(self) -> Optional[float]:
        if not self.is_bounded:
            return None
        return self.client_timeout_ms / 1000.0

    @classmethod
    def derive(cls, configured_ms: int, caller_timeout: Optional[float] = None) -> "OperationBudget":
        """
        Бюджет из настроенного таймаута хранилища и оставшегося времени вызывающего

        Действует более жёсткая из двух ненулевых границ.

        Args:
            configured_ms: Таймаут из конфигурации (mappings/query), 0 - нет
            caller_timeout: Оставшееся время вызывающего в секундах, None/0 - нет,
                отрицательное - дедлайн уже истёк
        """
        caller_ms = seconds_to_ms(caller_timeout)
        bounds = [value for value in (configured_ms, caller_ms) if value > 0]
        effective = min(bounds) if bounds else UNBOUNDED
        return cls(client_timeout_ms=effective, server_timeout_ms=max_execution_time_ms(effective))
