"""
MODULE: query_registry.config.settings
RESPONSIBILITY: Store configuration loading and validation.
ALLOWED: os, dotenv, dataclasses, loguru.
FORBIDDEN: Database connections (only config), import-time loading.
ERRORS: ConfigurationError (validation).

Конфигурация хранилища запросов

Настройки читаются из переменных окружения (и .env файла через
python-dotenv) в неизменяемые dataclass-объекты. Глобального экземпляра
нет: конфигурацию создаёт и передаёт в фабрику точка сборки хоста.
"""

import os
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_CEILING
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from loguru import logger
import psycopg2
from psycopg2.extensions import parse_dsn

from query_registry.core.exceptions import ConfigurationError

ENV_PREFIX = "RESTQL_DATABASE_"

_NANOS_PER_UNIT = {
    "ns": Decimal(1),
    "us": Decimal(1_000),
    "µs": Decimal(1_000),
    "μs": Decimal(1_000),
    "ms": Decimal(1_000_000),
    "s": Decimal(1_000_000_000),
    "m": Decimal(60_000_000_000),
    "h": Decimal(3_600_000_000_000),
}
_NANOS_PER_MS = Decimal(1_000_000)
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(value: str) -> int:
    """
    Разбор длительности в формате "300ms", "2s", "1m30s", "1.5h"

    Returns:
        Длительность в миллисекундах (доли миллисекунды округляются вверх)

    Raises:
        ConfigurationError: Пустая строка, неизвестная единица или отрицательное значение
    """
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise ConfigurationError("Пустое значение длительности")
    if text.startswith("-"):
        raise ConfigurationError(f"Длительность не может быть отрицательной: {value}")
    if text.startswith("+"):
        text = text[1:]
    if text == "0":
        return 0

    total_nanos = Decimal(0)
    position = 0
    while position < len(text):
        match = _DURATION_PART_RE.match(text, position)
        if not match:
            raise ConfigurationError(f"Некорректная длительность: {value}")
        try:
            amount = Decimal(match.group(1))
        except InvalidOperation as e:
            raise ConfigurationError(f"Некорректная длительность: {value}") from e
        total_nanos += amount * _NANOS_PER_UNIT[match.group(2)]
        position = match.end()

    millis = (total_nanos / _NANOS_PER_MS).to_integral_value(rounding=ROUND_CEILING)
    return int(millis)


_TRUE_VALUES = ("1", "t", "T", "TRUE", "true", "True")
_FALSE_VALUES = ("0", "f", "F", "FALSE", "false", "False")


def parse_bool(value: str) -> bool:
    """
    Разбор логического значения

    Принимаются только 1/t/T/TRUE/true/True и 0/f/F/FALSE/false/False;
    "yes", "on" и подобные считаются ошибкой.

    Raises:
        ConfigurationError: Если строка не похожа на bool
    """
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Некорректное логическое значение: {value}")


@dataclass(frozen=True)
class DatabaseConfig:
    """Параметры подключения к PostgreSQL"""
    dsn: str
    connect_timeout_ms: int = 10_000
    pool_min: int = 1
    pool_max: int = 10

    @property
    def connect_timeout_seconds(self) -> int:
        """connect_timeout libpq в целых секундах (0 - ждать бесконечно)"""
        if self.connect_timeout_ms <= 0:
            return 0
        return max(1, -(-self.connect_timeout_ms // 1000))

    def safe_dsn(self) -> str:
        """DSN без пароля для логов"""
        if not self.dsn:
            return ""
        try:
            params = parse_dsn(self.dsn)
        except psycopg2.ProgrammingError:
            return "<неразборчивый DSN>"
        params.pop("password", None)
        return " ".join(f"{key}={val}" for key, val in sorted(params.items()))


@dataclass(frozen=True)
class TimeoutConfig:
    """Таймауты операций в миллисекундах (0 - без ограничения)"""
    mappings_timeout_ms: int = 0
    query_timeout_ms: int = 0


@dataclass(frozen=True)
class StoreConfig:
    """Полная конфигурация хранилища"""
    enabled: bool = True
    database: DatabaseConfig = field(default_factory=lambda: DatabaseConfig(dsn=""))
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    ensure_schema: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> "StoreConfig":
        """Загрузка конфигурации из окружения"""
        return EnvironmentLoader(env_file=env_file, environ=environ).load()

    def validate(self) -> None:
        """
        Валидация конфигурации

        Raises:
            ConfigurationError: При некорректных значениях
        """
        if self.database.pool_min < 1:
            raise ConfigurationError("Минимальный размер пула должен быть не меньше 1")
        if self.database.pool_max < self.database.pool_min:
            raise ConfigurationError("Максимальный размер пула меньше минимального")
        if self.timeouts.mappings_timeout_ms < 0 or self.timeouts.query_timeout_ms < 0:
            raise ConfigurationError("Таймауты не могут быть отрицательными")

    def to_dict(self) -> Dict[str, Any]:
        """Преобразование конфигурации в словарь (без пароля)"""
        return {
            "enabled": self.enabled,
            "database": {
                "dsn": self.database.safe_dsn(),
                "connect_timeout_ms": self.database.connect_timeout_ms,
                "pool_min": self.database.pool_min,
                "pool_max": self.database.pool_max,
            },
            "timeouts": {
                "mappings_timeout_ms": self.timeouts.mappings_timeout_ms,
                "query_timeout_ms": self.timeouts.query_timeout_ms,
            },
            "ensure_schema": self.ensure_schema,
            "log_level": self.log_level,
        }


class EnvironmentLoader:
    """
    Чтение StoreConfig из переменных окружения RESTQL_DATABASE_*
    """

    def __init__(self, env_file: Optional[str] = None, environ: Optional[Dict[str, str]] = None):
        """
        Args:
            env_file: Путь к .env файлу (опционально)
            environ: Явный словарь переменных вместо os.environ (для тестов)
        """
        if environ is None:
            self._load_environment(env_file)
            environ = dict(os.environ)
        self._environ = environ

    def _load_environment(self, env_file: Optional[str]) -> None:
        """Загрузка .env файла"""
        try:
            if env_file and os.path.exists(env_file):
                load_dotenv(env_file)
            else:
                load_dotenv()
        except Exception as e:
            logger.warning(f"Не удалось загрузить .env файл: {e}")

    def _get_env_var(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._environ.get(ENV_PREFIX + key)
        if value is None or value == "":
            return default
        return value

    def _get_env_int(self, key: str, default: int) -> int:
        value = self._get_env_var(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError as e:
            raise ConfigurationError(f"Неверный формат int для {ENV_PREFIX}{key}: {value}") from e

    def _get_env_duration(self, key: str, default: int) -> int:
        value = self._get_env_var(key)
        if value is None:
            return default
        try:
            return parse_duration(value)
        except ConfigurationError as e:
            logger.error(f"Не удалось разобрать {ENV_PREFIX}{key}: {e}")
            raise

    def _get_env_bool(self, key: str, default: bool) -> bool:
        value = self._get_env_var(key)
        if value is None:
            return default
        return parse_bool(value)

    def _load_enabled(self) -> bool:
        # Нераспознанное значение выключает хранилище, а не роняет хоста
        try:
            enabled = self._get_env_bool("ENABLED", True)
        except ConfigurationError:
            logger.warning("Хранилище запросов выключено: некорректное значение RESTQL_DATABASE_ENABLED")
            return False
        if not enabled:
            logger.warning("Хранилище запросов выключено через RESTQL_DATABASE_ENABLED")
        return enabled

    def load(self) -> StoreConfig:
        config = StoreConfig(
            enabled=self._load_enabled(),
            database=DatabaseConfig(
                dsn=self._get_env_var("CONNECTION_STRING", "") or "",
                connect_timeout_ms=self._get_env_duration("CONNECTION_TIMEOUT", 10_000),
                pool_min=self._get_env_int("POOL_MIN", 1),
                pool_max=self._get_env_int("POOL_MAX", 10),
            ),
            timeouts=TimeoutConfig(
                mappings_timeout_ms=self._get_env_duration("MAPPINGS_READ_TIMEOUT", 0),
                query_timeout_ms=self._get_env_duration("QUERY_READ_TIMEOUT", 0),
            ),
            ensure_schema=self._get_env_bool("ENSURE_SCHEMA", True),
            log_level=self._get_env_var("LOG_LEVEL", "INFO") or "INFO",
        )
        config.validate()
        return config
