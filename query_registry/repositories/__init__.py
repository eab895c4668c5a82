"""
MODULE: query_registry.repositories
RESPONSIBILITY: Expose repository classes.
ALLOWED: Internal modules.
FORBIDDEN: None.
ERRORS: None.

Репозитории маппингов и сохранённых запросов.
"""

from query_registry.repositories.mapping_repository import MappingRepository
from query_registry.repositories.query_repository import QueryRepository

__all__ = [
    'MappingRepository',
    'QueryRepository',
]
