"""
MODULE: query_registry.core.models
RESPONSIBILITY: Define domain data structures (dataclasses).
ALLOWED: Dataclasses, Typing, urllib.parse.
FORBIDDEN: Database operations.
ERRORS: InvalidMapping (Mapping.parse).

Модели данных хранилища запросов

Модуль содержит:
- Mapping: привязка имени ресурса к URL для тенанта
- SavedQueryRevision / SavedQuery: то, что получает шлюз запросов
- TenantDocument / QueryDocument / RevisionDocument: форма документов в БД
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlsplit

from query_registry.core.exceptions import InvalidMapping

ALLOWED_SCHEMES = ("http", "https")

_PATH_PARAM_RE = re.compile(r"^:(\w+)$")


@dataclass(frozen=True)
class Mapping:
    """
    Привязка ресурса тенанта к URL

    Attributes:
        resource_name: Имя ресурса, по которому к нему обращаются запросы
        url: Исходный URL в том виде, в котором он хранится в БД
        scheme: Схема (http/https)
        host: Хост с портом
        path: Путь URL
        path_params: Имена параметров пути (сегменты вида ":id")
        query: Строка query-параметров без "?"
    """
    resource_name: str
    url: str
    scheme: str
    host: str
    path: str = ""
    path_params: Tuple[str, ...] = ()
    query: str = ""

    @classmethod
    def parse(cls, resource_name: str, url: str) -> "Mapping":
        """
        Разбор и валидация пары (ресурс, url)

        Raises:
            InvalidMapping: Пустое имя ресурса, не строковый URL,
                URL без схемы или хоста
        """
        if not isinstance(resource_name, str) or not resource_name.strip():
            raise InvalidMapping("Пустое имя ресурса")
        if not isinstance(url, str) or not url.strip():
            raise InvalidMapping(f"Пустой URL для ресурса {resource_name}")

        try:
            parts = urlsplit(url.strip())
        except ValueError as e:
            raise InvalidMapping(f"Некорректный URL для ресурса {resource_name}: {e}") from e

        if parts.scheme.lower() not in ALLOWED_SCHEMES:
            raise InvalidMapping(f"Неподдерживаемая схема '{parts.scheme}' для ресурса {resource_name}")
        if not parts.netloc:
            raise InvalidMapping(f"В URL ресурса {resource_name} не указан хост")

        path_params = []
        for segment in parts.path.split("/"):
            match = _PATH_PARAM_RE.match(segment)
            if match:
                path_params.append(match.group(1))

        return cls(
            resource_name=resource_name,
            url=url,
            scheme=parts.scheme.lower(),
            host=parts.netloc,
            path=parts.path,
            path_params=tuple(path_params),
            query=parts.query,
        )


@dataclass(frozen=True)
class SavedQueryRevision:
    """
    Одна ревизия сохранённого запроса

    Attributes:
        name: Имя запроса
        text: Текст запроса (не разбирается хранилищем)
        revision: Порядковый номер ревизии, начиная с 1
        archived: Признак архивации ревизии
    """
    name: str
    text: str
    revision: int
    archived: bool


@dataclass(frozen=True)
class SavedQuery:
    """Запрос с отфильтрованным набором ревизий"""
    namespace: str
    name: str
    archived: bool
    revisions: List[SavedQueryRevision] = field(default_factory=list)


@dataclass(frozen=True)
class RevisionDocument:
    """Элемент массива revisions в документе запроса"""
    text: str
    archived: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {"text": self.text, "archived": self.archived}


@dataclass(frozen=True)
class QueryDocument:
    """
    Документ запроса в том виде, в котором он хранится в таблице query

    Ревизия с номером k лежит в revisions[k - 1].
    """
    namespace: str
    name: str
    size: int
    archived: bool
    revisions: List[RevisionDocument] = field(default_factory=list)

    def revision_at(self, revision: int) -> Optional[RevisionDocument]:
        """Ревизия по номеру (1..size) или None, если номер вне диапазона"""
        if revision < 1 or revision > self.size or revision > len(self.revisions):
            return None
        return self.revisions[revision - 1]


@dataclass(frozen=True)
class TenantDocument:
    """Документ тенанта: сырые пары ресурс -> url"""
    tenant_id: str
    mappings: Dict[str, object] = field(default_factory=dict)
