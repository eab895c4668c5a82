"""
MODULE: query_registry.database_facade
RESPONSIBILITY: Single entry point the query gateway host talks to, and its factory.
ALLOWED: Repositories, core.database, config, loguru.
FORBIDDEN: SQL, document semantics (delegate to repositories).
ERRORS: DatabaseConnectionError (factory).

Фасад хранилища запросов и маппингов

Хост создаёт фасад явным вызовом new_query_registry_database(config)
из своей точки сборки. Регистрации при импорте модуля нет.
"""

from typing import List, Optional

from loguru import logger

from query_registry.config.settings import StoreConfig
from query_registry.core.database import DatabaseManager
from query_registry.core.exceptions import CommunicationFailure, DatabaseConnectionError
from query_registry.core.models import Mapping, SavedQuery, SavedQueryRevision
from query_registry.repositories.mapping_repository import MappingRepository
from query_registry.repositories.query_repository import QueryRepository

DATABASE_NAME = "PostgreSQL"


class QueryRegistryDatabase:
    """Фасад, делегирующий операции репозиториям маппингов и запросов."""

    def __init__(self, db_manager: DatabaseManager, mappings_timeout_ms: int = 0, query_timeout_ms: int = 0):
        self.db_manager = db_manager
        self.mappings = MappingRepository(db_manager, mappings_timeout_ms)
        self.queries = QueryRepository(db_manager, query_timeout_ms)

    def name(self) -> str:
        return DATABASE_NAME

    def close(self) -> None:
        self.db_manager.close()

    # Маппинги тенантов
    def find_mappings_for_tenant(self, tenant_id: str, timeout: Optional[float] = None) -> List[Mapping]:
        """Маппинги тенанта."""
        return self.mappings.find_mappings_for_tenant(tenant_id, timeout)

    def set_mapping(self, tenant_id: str, resource_name: str, url: str,
                    timeout: Optional[float] = None) -> None:
        """Установка одного маппинга тенанта."""
        self.mappings.set_mapping(tenant_id, resource_name, url, timeout)

    def find_all_tenants(self, timeout: Optional[float] = None) -> List[str]:
        """Все тенанты."""
        return self.mappings.find_all_tenants(timeout)

    # Сохранённые запросы
    def find_query(self, namespace: str, name: str, revision: int,
                   timeout: Optional[float] = None) -> SavedQueryRevision:
        """Одна ревизия запроса."""
        return self.queries.find_query(namespace, name, revision, timeout)

    def find_all_namespaces(self, timeout: Optional[float] = None) -> List[str]:
        """Все namespace."""
        return self.queries.find_all_namespaces(timeout)

    def find_queries_for_namespace(self, namespace: str, archived: bool,
                                   timeout: Optional[float] = None) -> List[SavedQuery]:
        """Запросы namespace, отфильтрованные по архивации."""
        return self.queries.find_queries_for_namespace(namespace, archived, timeout)

    def find_query_with_all_revisions(self, namespace: str, name: str, archived: bool,
                                      timeout: Optional[float] = None) -> SavedQuery:
        """Запрос с ревизиями, отфильтрованными по архивации."""
        return self.queries.find_query_with_all_revisions(namespace, name, archived, timeout)

    def create_query_revision(self, namespace: str, name: str, text: str,
                              timeout: Optional[float] = None) -> int:
        """Новая ревизия запроса."""
        return self.queries.create_query_revision(namespace, name, text, timeout)

    # Архивация
    def update_query_archiving(self, namespace: str, name: str, archived: bool,
                               timeout: Optional[float] = None) -> None:
        """Архивация запроса целиком."""
        self.queries.update_query_archiving(namespace, name, archived, timeout)

    def update_revision_archiving(self, namespace: str, name: str, revision: int, archived: bool,
                                  timeout: Optional[float] = None) -> None:
        """Архивация одной ревизии."""
        self.queries.update_revision_archiving(namespace, name, revision, archived, timeout)


def new_query_registry_database(config: StoreConfig) -> Optional[QueryRegistryDatabase]:
    """
    Создание хранилища из конфигурации

    Args:
        config: Конфигурация хранилища

    Returns:
        Фасад хранилища или None, если хранилище выключено или не задана
        строка подключения

    Raises:
        DatabaseConnectionError: Если не удалось подключиться к БД
    """
    if not config.enabled:
        logger.warning("Хранилище запросов выключено")
        return None

    if not config.database.dsn:
        logger.info("Строка подключения к БД не задана")
        return None

    db_manager = DatabaseManager(config.database)
    db_manager.connect()

    if config.ensure_schema:
        try:
            db_manager.ensure_schema()
        except CommunicationFailure as e:
            db_manager.close()
            raise DatabaseConnectionError(f"Не удалось создать таблицы хранилища: {e}") from e

    logger.info(f"Хранилище запросов готово: {config.to_dict()}")
    return QueryRegistryDatabase(
        db_manager,
        mappings_timeout_ms=config.timeouts.mappings_timeout_ms,
        query_timeout_ms=config.timeouts.query_timeout_ms,
    )
