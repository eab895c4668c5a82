"""
MODULE: query_registry.utils.logger_config
RESPONSIBILITY: Centralized Loguru sink configuration.
ALLOWED: Configuring loguru sinks.
FORBIDDEN: Business logic, configuring sinks at import time.
ERRORS: OSError (if log directory creation fails).

Настройка логирования через Loguru.
Синки добавляются только явным вызовом configure_logging() из точки
сборки хоста; остальные модули импортируют logger напрямую из loguru.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    rotation: str = "10 MB",
    retention: str = "30 days",
) -> None:
    """
    Настройка синков loguru

    Args:
        level: Минимальный уровень (DEBUG, INFO, WARNING, ERROR)
        log_file: Путь к файлу лога (опционально)
        rotation: Ротация файла лога
        retention: Срок хранения файлов лога
    """
    # Удаляем стандартный handler
    logger.remove()

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=level.upper(),
        colorize=True,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            format=FILE_FORMAT,
            level=level.upper(),
            rotation=rotation,
            retention=retention,
            compression="zip",
        )
