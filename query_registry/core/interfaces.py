"""
MODULE: query_registry.core.interfaces
RESPONSIBILITY: Define the Protocol the query gateway host consumes.
ALLOWED: Typing imports, Protocol.
FORBIDDEN: Implementation details.
ERRORS: None.

Контракт хранилища для шлюза запросов.
"""

from typing import List, Optional, Protocol, runtime_checkable

from query_registry.core.models import Mapping, SavedQuery, SavedQueryRevision


@runtime_checkable
class IQueryRegistryDatabase(Protocol):
    """Интерфейс хранилища маппингов и сохранённых запросов"""

    def name(self) -> str:
        """Имя реализации хранилища"""
        ...

    def find_mappings_for_tenant(self, tenant_id: str, timeout: Optional[float] = None) -> List[Mapping]:
        ...

    def set_mapping(self, tenant_id: str, resource_name: str, url: str,
                    timeout: Optional[float] = None) -> None:
        ...

    def find_all_tenants(self, timeout: Optional[float] = None) -> List[str]:
        ...

    def find_query(self, namespace: str, name: str, revision: int,
                   timeout: Optional[float] = None) -> SavedQueryRevision:
        ...

    def find_all_namespaces(self, timeout: Optional[float] = None) -> List[str]:
        ...

    def find_queries_for_namespace(self, namespace: str, archived: bool,
                                   timeout: Optional[float] = None) -> List[SavedQuery]:
        ...

    def find_query_with_all_revisions(self, namespace: str, name: str, archived: bool,
                                      timeout: Optional[float] = None) -> SavedQuery:
        ...

    def create_query_revision(self, namespace: str, name: str, text: str,
                              timeout: Optional[float] = None) -> int:
        ...

    def update_query_archiving(self, namespace: str, name: str, archived: bool,
                               timeout: Optional[float] = None) -> None:
        ...

    def update_revision_archiving(self, namespace: str, name: str, revision: int, archived: bool,
                                  timeout: Optional[float] = None) -> None:
        ...
