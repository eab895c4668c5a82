"""
Хранилище сохранённых запросов и маппингов тенантов на PostgreSQL.

    from query_registry import StoreConfig, configure_logging, new_query_registry_database

    config = StoreConfig.from_env()
    configure_logging(config.log_level)
    database = new_query_registry_database(config)
"""

from query_registry.config.settings import StoreConfig
from query_registry.database_facade import QueryRegistryDatabase, new_query_registry_database
from query_registry.utils.logger_config import configure_logging

__version__ = "1.0.0"

__all__ = [
    'StoreConfig',
    'QueryRegistryDatabase',
    'new_query_registry_database',
    'configure_logging',
]
