"""
MODULE: query_registry.repositories.mapping_repository
RESPONSIBILITY: Tenant -> resource URL mappings.
ALLOWED: typing, loguru, psycopg2.extras, query_registry.core.
FORBIDDEN: Business logic outside DB operations.
ERRORS: MappingsNotFound, InvalidMapping, CommunicationFailure.

Репозиторий маппингов тенантов.
"""

from typing import List, Optional

from loguru import logger
from psycopg2.extras import Json

from query_registry.core.database import DatabaseManager
from query_registry.core.decoding import decode_tenant
from query_registry.core.exceptions import InvalidMapping, MappingsNotFound
from query_registry.core.models import Mapping
from query_registry.core.timeouts import OperationBudget


class MappingRepository:
    """Репозиторий для работы с маппингами тенантов"""

    def __init__(self, db_manager: DatabaseManager, timeout_ms: int = 0):
        self.db_manager = db_manager
        self.timeout_ms = timeout_ms

    def _budget(self, timeout: Optional[float]) -> OperationBudget:
        budget = OperationBudget.derive(self.timeout_ms, timeout)
        logger.debug(f"Таймаут маппингов: {budget.client_timeout_ms} мс")
        return budget

    def find_mappings_for_tenant(self, tenant_id: str, timeout: Optional[float] = None) -> List[Mapping]:
        """
        Получение маппингов тенанта

        Некорректная пара (ресурс, url) пропускается с предупреждением,
        чтобы одна битая привязка не мешала разрешить остальные.

        Args:
            tenant_id: Идентификатор тенанта
            timeout: Оставшееся время вызывающего в секундах

        Returns:
            Список маппингов (порядок не гарантирован)

        Raises:
            MappingsNotFound: Документа тенанта нет или он повреждён
            CommunicationFailure: Ошибка обмена с БД
        """
        query = "SELECT id, mappings FROM tenant WHERE id = %s"
        row = self.db_manager.fetch_one(query, (tenant_id,), self._budget(timeout))

        if row is None:
            logger.error(f"Маппинги не найдены в БД для тенанта {tenant_id}")
            raise MappingsNotFound(f"Маппинги не найдены: тенант {tenant_id}", tenant_id=tenant_id)

        decoded = decode_tenant(row)
        if not decoded.ok:
            logger.error(f"Не удалось декодировать маппинги тенанта {tenant_id}: {decoded.reason}")
            raise MappingsNotFound(
                f"Маппинги тенанта {tenant_id} повреждены: {decoded.reason}",
                tenant_id=tenant_id,
            )

        result = []
        for resource_name, url in decoded.value.mappings.items():
            try:
                result.append(Mapping.parse(resource_name, url))
            except InvalidMapping as e:
                logger.warning(f"Пропущен некорректный маппинг тенанта {tenant_id}: {e}")
        return result

    def set_mapping(self, tenant_id: str, resource_name: str, url: str, timeout: Optional[float] = None) -> None:
        """
        Установка одного маппинга тенанта

        Создаёт документ тенанта при первом вызове; остальные маппинги
        не затрагиваются. Повторный вызов с теми же значениями ничего не меняет.

        Raises:
            InvalidMapping: Имя ресурса или url содержит символ NUL
            CommunicationFailure: Ошибка обмена с БД
        """
        if "\x00" in resource_name or "\x00" in url:
            raise InvalidMapping(f"Маппинг тенанта {tenant_id} содержит символ NUL: ресурс {resource_name!r}")

        query = """
            INSERT INTO tenant (id, mappings)
            VALUES (%s, %s::jsonb)
            ON CONFLICT (id)
            DO UPDATE SET mappings = tenant.mappings || EXCLUDED.mappings
        """
        self.db_manager.execute_update(query, (tenant_id, Json({resource_name: url})), self._budget(timeout))
        logger.info(f"Маппинг сохранён: тенант {tenant_id}, ресурс {resource_name}")

    def find_all_tenants(self, timeout: Optional[float] = None) -> List[str]:
        """
        Список идентификаторов всех тенантов (без повторов)

        Raises:
            CommunicationFailure: Ошибка обмена с БД
        """
        query = "SELECT DISTINCT id FROM tenant ORDER BY id"
        rows = self.db_manager.fetch_all(query, None, self._budget(timeout))
        return [row["id"] for row in rows]
