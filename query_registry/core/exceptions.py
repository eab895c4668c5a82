"""
MODULE: query_registry.core.exceptions
RESPONSIBILITY: Define the error taxonomy of the query registry store.
ALLOWED: Inheriting from QueryRegistryError.
FORBIDDEN: Business logic, external imports (except standard library).
ERRORS: None (defines errors).

Исключения хранилища запросов и маппингов.
Все исключения должны наследоваться от QueryRegistryError.
"""

from typing import Optional


class QueryRegistryError(Exception):
    """Базовое исключение хранилища"""
    pass


class ConfigurationError(QueryRegistryError):
    """Ошибка конфигурации (отсутствующие или неверные настройки)"""
    pass


class DatabaseConnectionError(QueryRegistryError):
    """Ошибка подключения к базе данных"""
    pass


class NotFoundError(QueryRegistryError):
    """Документ не найден в базе данных"""
    pass


class MappingsNotFound(NotFoundError):
    """Маппинги тенанта не найдены"""

    def __init__(self, message: str, tenant_id: Optional[str] = None):
        super().__init__(message)
        self.tenant_id = tenant_id


class QueryNotFound(NotFoundError):
    """Запрос (namespace, name) не найден"""

    def __init__(self, message: str, namespace: Optional[str] = None, name: Optional[str] = None):
        super().__init__(message)
        self.namespace = namespace
        self.name = name


class NamespaceNotFound(NotFoundError):
    """В namespace нет ни одного запроса"""

    def __init__(self, message: str, namespace: Optional[str] = None):
        super().__init__(message)
        self.namespace = namespace


class InvalidRevision(QueryRegistryError):
    """Номер ревизии вне диапазона [1, size]"""

    def __init__(self, message: str, revision: Optional[int] = None, size: Optional[int] = None):
        super().__init__(message)
        self.revision = revision
        self.size = size


class InvalidMapping(QueryRegistryError):
    """Пара (ресурс, url) не прошла валидацию"""
    pass


class InvalidQueryText(QueryRegistryError):
    """Текст запроса нельзя сохранить (символ NUL не допускается в JSONB)"""

    def __init__(self, message: str, namespace: Optional[str] = None, name: Optional[str] = None):
        super().__init__(message)
        self.namespace = namespace
        self.name = name


class CommunicationFailure(QueryRegistryError):
    """Ошибка обмена с базой данных (всё, кроме "документ не найден")"""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.original_error = original_error
