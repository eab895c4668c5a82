"""
MODULE: query_registry.repositories.query_repository
RESPONSIBILITY: Saved queries: revision log reads/writes and archiving.
ALLOWED: typing, loguru, query_registry.core.
FORBIDDEN: Connection handling (use DatabaseManager).
ERRORS: QueryNotFound, NamespaceNotFound, InvalidRevision, CommunicationFailure.

Репозиторий сохранённых запросов.
"""

from typing import Any, Dict, List, Optional

from loguru import logger

from query_registry.core import archiving, revision_log
from query_registry.core.database import DatabaseManager
from query_registry.core.decoding import decode_query
from query_registry.core.exceptions import InvalidRevision, NamespaceNotFound, QueryNotFound
from query_registry.core.models import QueryDocument, SavedQuery, SavedQueryRevision
from query_registry.core.timeouts import OperationBudget

_QUERY_COLUMNS = "namespace, name, size, archived, revisions"


class QueryRepository:
    """Репозиторий сохранённых запросов"""

    def __init__(self, db_manager: DatabaseManager, timeout_ms: int = 0):
        self.db_manager = db_manager
        self.timeout_ms = timeout_ms

    def _budget(self, timeout: Optional[float]) -> OperationBudget:
        budget = OperationBudget.derive(self.timeout_ms, timeout)
        logger.debug(f"Таймаут запроса: {budget.client_timeout_ms} мс")
        return budget

    def _load_document(self, namespace: str, name: str, timeout: Optional[float]) -> QueryDocument:
        """
        Загрузка и декодирование документа запроса

        Raises:
            QueryNotFound: Документа нет или он не соответствует ожидаемой форме
        """
        query = f"SELECT {_QUERY_COLUMNS} FROM query WHERE namespace = %s AND name = %s"
        row = self.db_manager.fetch_one(query, (namespace, name), self._budget(timeout))

        if row is None:
            logger.error(f"Запрос не найден в БД: {namespace}/{name}")
            raise QueryNotFound(f"Запрос не найден: {namespace}/{name}", namespace=namespace, name=name)

        decoded = decode_query(row)
        if not decoded.ok:
            logger.error(f"Не удалось декодировать запрос {namespace}/{name}: {decoded.reason}")
            raise QueryNotFound(
                f"Запрос {namespace}/{name} повреждён: {decoded.reason}",
                namespace=namespace,
                name=name,
            )
        return decoded.value

    # Чтение

    def find_query(self, namespace: str, name: str, revision: int,
                   timeout: Optional[float] = None) -> SavedQueryRevision:
        """
        Получение одной ревизии запроса

        Args:
            namespace: Пространство имён запроса
            name: Имя запроса
            revision: Номер ревизии, начиная с 1
            timeout: Оставшееся время вызывающего в секундах

        Raises:
            QueryNotFound: Запроса нет
            InvalidRevision: revision вне диапазона [1, size]
            CommunicationFailure: Ошибка обмена с БД
        """
        document = self._load_document(namespace, name, timeout)
        try:
            return revision_log.to_saved_revision(document, revision)
        except InvalidRevision as e:
            logger.error(f"Ревизия не найдена: {namespace}/{name}, ревизия {revision}: {e}")
            raise

    def find_all_namespaces(self, timeout: Optional[float] = None) -> List[str]:
        """Все namespace, в которых есть хотя бы один запрос"""
        query = "SELECT DISTINCT namespace FROM query ORDER BY namespace"
        rows = self.db_manager.fetch_all(query, None, self._budget(timeout))
        return [row["namespace"] for row in rows]

    def find_queries_for_namespace(self, namespace: str, archived: bool,
                                   timeout: Optional[float] = None) -> List[SavedQuery]:
        """
        Запросы namespace с ревизиями, у которых флаг архивации равен archived

        Пустой результат при существующем namespace ошибкой не является.

        Raises:
            NamespaceNotFound: В namespace нет ни одного запроса
            CommunicationFailure: Ошибка обмена с БД
        """
        query = f"SELECT {_QUERY_COLUMNS} FROM query WHERE namespace = %s ORDER BY name"
        rows = self.db_manager.fetch_all(query, (namespace,), self._budget(timeout))

        if not rows:
            logger.error(f"Namespace не найден в БД: {namespace}")
            raise NamespaceNotFound(f"Namespace не найден: {namespace}", namespace=namespace)

        result = []
        for row in rows:
            decoded = decode_query(row)
            if not decoded.ok:
                logger.warning(f"Пропущен повреждённый запрос в namespace {namespace}: {decoded.reason}")
                continue
            if revision_log.matches_archived(decoded.value, archived):
                result.append(self._to_saved_query(decoded.value, archived))
        return result

    def find_query_with_all_revisions(self, namespace: str, name: str, archived: bool,
                                      timeout: Optional[float] = None) -> SavedQuery:
        """
        Запрос с ревизиями, у которых флаг архивации равен archived

        Raises:
            QueryNotFound: Запроса нет
            CommunicationFailure: Ошибка обмена с БД
        """
        document = self._load_document(namespace, name, timeout)
        return self._to_saved_query(document, archived)

    @staticmethod
    def _to_saved_query(document: QueryDocument, archived: bool) -> SavedQuery:
        return SavedQuery(
            namespace=document.namespace,
            name=document.name,
            archived=document.archived,
            revisions=revision_log.select_revisions(document, archived),
        )

    # Запись

    def create_query_revision(self, namespace: str, name: str, text: str,
                              timeout: Optional[float] = None) -> int:
        """
        Добавление новой ревизии (документ создаётся при первом вызове)

        Returns:
            Номер добавленной ревизии

        Raises:
            InvalidQueryText: Текст содержит символ NUL
            CommunicationFailure: Ошибка обмена с БД
        """
        row = self.db_manager.fetch_one(
            revision_log.APPEND_REVISION_SQL,
            revision_log.append_params(namespace, name, text),
            self._budget(timeout),
        )
        size = row["size"] if row else 0
        logger.info(f"Добавлена ревизия {size} запроса {namespace}/{name}")
        return size

    def update_query_archiving(self, namespace: str, name: str, archived: bool,
                               timeout: Optional[float] = None) -> None:
        """
        Изменение флага архивации запроса

        archived=True архивирует и все ревизии; archived=False снимает только
        флаг документа.

        Raises:
            QueryNotFound: Запроса нет
            CommunicationFailure: Ошибка обмена с БД
        """
        transition = archiving.transition_for_query(archived)
        params = {"namespace": namespace, "name": name}
        affected_rows = self.db_manager.execute_update(
            archiving.statement_for(transition), params, self._budget(timeout)
        )

        if affected_rows == 0:
            logger.error(f"Архивация: запрос не найден в БД: {namespace}/{name}")
            raise QueryNotFound(f"Запрос не найден: {namespace}/{name}", namespace=namespace, name=name)

        logger.info(f"Запрос {namespace}/{name}: {transition.value}")

    def update_revision_archiving(self, namespace: str, name: str, revision: int, archived: bool,
                                  timeout: Optional[float] = None) -> None:
        """
        Изменение флага архивации одной ревизии

        archived=False также снимает флаг архивации со всего запроса;
        archived=True флаг документа не меняет.

        Raises:
            InvalidRevision: revision вне диапазона [1, size]
            QueryNotFound: Запроса нет
            CommunicationFailure: Ошибка обмена с БД
        """
        revision_log.check_revision_number(namespace, name, revision)

        transition = archiving.transition_for_revision(archived)
        params: Dict[str, Any] = {"namespace": namespace, "name": name, "revision": revision}
        row = self.db_manager.fetch_one(archiving.statement_for(transition), params, self._budget(timeout))

        if row is None:
            logger.error(f"Архивация ревизии: запрос не найден в БД: {namespace}/{name}")
            raise QueryNotFound(f"Запрос не найден: {namespace}/{name}", namespace=namespace, name=name)

        size = row["size"]
        if revision > size:
            logger.error(f"Архивация ревизии: ревизии {revision} нет у {namespace}/{name} (size={size})")
            raise InvalidRevision(
                f"Некорректная ревизия для запроса {namespace}/{name}: "
                f"последняя ревизия {size}, запрошена {revision}",
                revision=revision,
                size=size,
            )

        logger.info(f"Запрос {namespace}/{name}, ревизия {revision}: {transition.value}")
