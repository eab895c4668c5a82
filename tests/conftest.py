import os
from dataclasses import dataclass
from typing import Any, List, Optional

import pytest

from query_registry.core.timeouts import OperationBudget


@dataclass
class Call:
    method: str
    query: str
    params: Any
    budget: OperationBudget


class FakeDatabaseManager:
    """
    Подменяет DatabaseManager в тестах репозиториев.
    Каждый вызов забирает следующий результат из очереди; исключение в очереди выбрасывается.
    """

    def __init__(self):
        self.calls: List[Call] = []
        self.results: List[Any] = []
        self.closed = False

    def queue(self, *results: Any) -> None:
        self.results.extend(results)

    def _next(self, method: str, query: str, params: Any, budget: OperationBudget) -> Any:
        self.calls.append(Call(method, query, params, budget))
        if not self.results:
            raise AssertionError(f"Нет подготовленного результата для {method}")
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def fetch_one(self, query: str, params: Any, budget: OperationBudget) -> Optional[dict]:
        return self._next("fetch_one", query, params, budget)

    def fetch_all(self, query: str, params: Any, budget: OperationBudget) -> List[dict]:
        return self._next("fetch_all", query, params, budget)

    def execute_update(self, query: str, params: Any, budget: OperationBudget) -> int:
        return self._next("execute_update", query, params, budget)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_db():
    return FakeDatabaseManager()


def _query_row(namespace, name, revisions, archived=False, size=None):
    return {
        "namespace": namespace,
        "name": name,
        "size": len(revisions) if size is None else size,
        "archived": archived,
        "revisions": [{"text": text, "archived": flag} for text, flag in revisions],
    }


@pytest.fixture
def query_row():
    """Фабрика строк таблицы query; revisions - список (text, archived)"""
    return _query_row


TEST_DSN_ENV = "QUERY_REGISTRY_TEST_DSN"


@pytest.fixture
def postgres_manager():
    """Настоящий PostgreSQL; тесты пропускаются, если QUERY_REGISTRY_TEST_DSN не задан"""
    dsn = os.environ.get(TEST_DSN_ENV)
    if not dsn:
        pytest.skip(f"{TEST_DSN_ENV} не задан")

    from query_registry.config.settings import DatabaseConfig
    from query_registry.core.database import DatabaseManager, UNBOUNDED_BUDGET

    manager = DatabaseManager(DatabaseConfig(dsn=dsn, pool_min=1, pool_max=4))
    manager.connect()
    manager.ensure_schema()
    manager.execute_update("TRUNCATE tenant, query", None, UNBOUNDED_BUDGET)
    yield manager
    manager.execute_update("TRUNCATE tenant, query", None, UNBOUNDED_BUDGET)
    manager.close()
