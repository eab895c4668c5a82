"""
MODULE: query_registry.config
RESPONSIBILITY: Expose configuration dataclasses and loaders.
ALLOWED: Internal modules.
FORBIDDEN: None.
ERRORS: None.
"""

from query_registry.config.settings import (
    DatabaseConfig,
    EnvironmentLoader,
    StoreConfig,
    TimeoutConfig,
    parse_duration,
)

__all__ = [
    'DatabaseConfig',
    'EnvironmentLoader',
    'StoreConfig',
    'TimeoutConfig',
    'parse_duration',
]
