"""
MODULE: query_registry.core.database
RESPONSIBILITY: PostgreSQL connection pool, per-operation timeouts, error translation.
ALLOWED: psycopg2, loguru, threading, query_registry.core.timeouts.
FORBIDDEN: Business logic, document semantics (use repositories).
ERRORS: DatabaseConnectionError, CommunicationFailure.

Менеджер базы данных хранилища запросов

Модуль предоставляет:
- DatabaseManager: пул подключений и выполнение одного оператора в транзакции
  с серверным (statement_timeout) и клиентским (cancel) ограничением времени
- StatementCanceller: отмена оператора по дедлайну, безопасная к гонке с завершением
- SCHEMA_SQL: таблицы tenant и query
"""

import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import psycopg2
from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool
from loguru import logger

from query_registry.config.settings import DatabaseConfig
from query_registry.core.exceptions import CommunicationFailure, DatabaseConnectionError
from query_registry.core.timeouts import OperationBudget

SCHEMA_SQL = (
    """
    CREATE TABLE IF NOT EXISTS tenant (
        id TEXT PRIMARY KEY,
        mappings JSONB NOT NULL DEFAULT '{}'::jsonb
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS query (
        namespace TEXT NOT NULL,
        name TEXT NOT NULL,
        size INTEGER NOT NULL DEFAULT 0,
        archived BOOLEAN NOT NULL DEFAULT FALSE,
        revisions JSONB NOT NULL DEFAULT '[]'::jsonb,
        PRIMARY KEY (namespace, name)
    )
    """,
)

UNBOUNDED_BUDGET = OperationBudget(client_timeout_ms=0, server_timeout_ms=0)


class StatementCanceller:
    """
    Отмена выполняющегося оператора по клиентскому дедлайну

    Таймер может сработать одновременно с завершением операции. Флаг done
    под блокировкой гарантирует, что cancel() не уйдёт на подключение,
    которое уже возвращено в пул и выполняет чужой запрос.
    """

    def __init__(self, connection):
        self._connection = connection
        self._lock = threading.Lock()
        self._done = False

    def cancel(self) -> None:
        with self._lock:
            if self._done:
                return
            logger.warning("Истёк клиентский дедлайн операции, запрос отменяется")
            try:
                self._connection.cancel()
            except psycopg2.Error as e:
                logger.warning(f"Не удалось отменить запрос: {e}")

    def finish(self) -> None:
        """Операция завершена; последующие вызовы cancel() ничего не делают"""
        with self._lock:
            self._done = True


class DatabaseManager:
    """
    Менеджер пула подключений к PostgreSQL

    Каждая операция берёт подключение из пула, выполняет один оператор в
    отдельной транзакции и возвращает подключение. Состояния между
    операциями менеджер не хранит, кроме самого пула.

    Attributes:
        config: Конфигурация подключения к БД
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._pool: Optional[ThreadedConnectionPool] = None

    def connect(self) -> None:
        """
        Создание пула и проверка подключения (SELECT 1)

        Raises:
            DatabaseConnectionError: При ошибке подключения
        """
        if self._pool is not None and not self._pool.closed:
            logger.debug("Пул подключений уже создан")
            return

        logger.info(
            f"Подключение к БД: {self.config.safe_dsn()}, "
            f"таймаут подключения {self.config.connect_timeout_ms} мс"
        )
        try:
            self._pool = ThreadedConnectionPool(
                self.config.pool_min,
                self.config.pool_max,
                dsn=self.config.dsn,
                connect_timeout=self.config.connect_timeout_seconds,
            )
        except psycopg2.Error as e:
            error_msg = f"Ошибка подключения к БД: {e}"
            logger.error(error_msg)
            raise DatabaseConnectionError(error_msg) from e

        try:
            self.fetch_one("SELECT 1 AS ok", None, UNBOUNDED_BUDGET)
        except CommunicationFailure as e:
            self.close()
            error_msg = f"БД не отвечает на проверочный запрос: {e}"
            logger.error(error_msg)
            raise DatabaseConnectionError(error_msg) from e

        logger.info("Подключение к БД установлено")

    def close(self) -> None:
        """Закрытие всех подключений пула"""
        if self._pool is not None and not self._pool.closed:
            try:
                self._pool.closeall()
                logger.info("Пул подключений к БД закрыт")
            except psycopg2.Error as e:
                logger.warning(f"Ошибка при закрытии пула подключений: {e}")
        self._pool = None

    def is_connected(self) -> bool:
        return self._pool is not None and not self._pool.closed

    def ensure_schema(self) -> None:
        """Создание таблиц tenant и query, если их нет"""
        with self.session(UNBOUNDED_BUDGET) as cursor:
            for statement in SCHEMA_SQL:
                cursor.execute(statement)
        logger.debug("Таблицы tenant и query созданы или уже существуют")

    @contextmanager
    def session(self, budget: OperationBudget) -> Iterator[RealDictCursor]:
        """
        Транзакция на одном подключении из пула

        Серверный потолок выставляется через SET LOCAL statement_timeout,
        клиентский дедлайн через connection.cancel() по таймеру. Ошибки
        psycopg2 и отказ драйвера принять параметры (ValueError, например
        NUL в строке) откатывают транзакцию и превращаются в
        CommunicationFailure с исходной ошибкой в original_error.

        Raises:
            CommunicationFailure: Нет пула или ошибка выполнения
        """
        if not self.is_connected():
            raise CommunicationFailure("Нет подключения к БД")

        try:
            connection = self._pool.getconn()
        except psycopg2.Error as e:
            error_msg = f"Не удалось получить подключение из пула: {e}"
            logger.error(error_msg)
            raise CommunicationFailure(error_msg, original_error=e) from e

        canceller = StatementCanceller(connection)
        timer = None
        broken = False
        try:
            connection.autocommit = False
            if budget.is_bounded:
                timer = threading.Timer(budget.client_timeout_seconds, canceller.cancel)
                timer.daemon = True
                timer.start()

            with connection.cursor(cursor_factory=RealDictCursor) as cursor:
                if budget.server_timeout_ms:
                    cursor.execute("SET LOCAL statement_timeout = %s", (budget.server_timeout_ms,))
                logger.debug(
                    f"Бюджет операции: клиент {budget.client_timeout_ms} мс, "
                    f"сервер {budget.server_timeout_ms} мс"
                )
                yield cursor
            connection.commit()
        except (psycopg2.Error, ValueError) as e:
            broken = self._rollback(connection)
            error_msg = f"Ошибка выполнения запроса к БД: {e}"
            logger.error(error_msg)
            raise CommunicationFailure(error_msg, original_error=e) from e
        except BaseException:
            broken = self._rollback(connection)
            raise
        finally:
            if timer is not None:
                timer.cancel()
            # Отмена, сработавшая после этой точки, уже не дойдёт до чужой операции
            canceller.finish()
            self._pool.putconn(connection, close=broken or bool(connection.closed))

    @staticmethod
    def _rollback(connection) -> bool:
        """Откат транзакции; True, если подключение больше нельзя использовать"""
        if connection.closed:
            return True
        try:
            connection.rollback()
            return False
        except psycopg2.Error as e:
            logger.warning(f"Ошибка отката транзакции, подключение будет закрыто: {e}")
            return True

    def fetch_one(self, query: str, params: Optional[Any], budget: OperationBudget) -> Optional[Dict[str, Any]]:
        """Выполнение запроса и получение первой строки (или None)"""
        with self.session(budget) as cursor:
            cursor.execute(query, params)
            row = cursor.fetchone()
        return dict(row) if row is not None else None

    def fetch_all(self, query: str, params: Optional[Any], budget: OperationBudget) -> List[Dict[str, Any]]:
        """Выполнение запроса и получение всех строк"""
        with self.session(budget) as cursor:
            cursor.execute(query, params)
            rows = cursor.fetchall()
        logger.debug(f"Выполнен SELECT запрос, возвращено {len(rows)} строк")
        return [dict(row) for row in rows]

    def execute_update(self, query: str, params: Optional[Any], budget: OperationBudget) -> int:
        """Выполнение INSERT/UPDATE; возвращает количество затронутых строк"""
        with self.session(budget) as cursor:
            cursor.execute(query, params)
            affected_rows = cursor.rowcount
        logger.debug(f"Выполнен UPDATE запрос, затронуто строк: {affected_rows}")
        return affected_rows
