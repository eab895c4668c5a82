"""
MODULE: query_registry.core.decoding
RESPONSIBILITY: Parse raw database rows into domain documents.
ALLOWED: json, typing, query_registry.core.models.
FORBIDDEN: Database access, raising on malformed rows.
ERRORS: None (returns DecodeFailure instead of raising).

Декодирование строк БД в документы

Разбор строки возвращает размеченный результат (Decoded / DecodeFailure),
а не бросает исключение, чтобы на месте вызова можно было отличить
"документ повреждён" от "документа нет".
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, TypeVar, Union

from query_registry.core.models import QueryDocument, RevisionDocument, TenantDocument

T = TypeVar("T")


@dataclass(frozen=True)
class Decoded(Generic[T]):
    """Успешно разобранный документ"""
    value: T
    ok = True


@dataclass(frozen=True)
class DecodeFailure:
    """Документ получен, но не соответствует ожидаемой форме"""
    reason: str
    ok = False


DecodeResult = Union[Decoded[T], DecodeFailure]


def _load_json(value: Any) -> Any:
    """JSONB обычно приходит уже разобранным, но текстовое значение тоже допустимо"""
    if isinstance(value, (str, bytes, bytearray)):
        return json.loads(value)
    return value


def decode_tenant(row: Dict[str, Any]) -> "DecodeResult[TenantDocument]":
    """Разбор строки таблицы tenant"""
    tenant_id = row.get("id")
    if not isinstance(tenant_id, str):
        return DecodeFailure(f"id тенанта должен быть строкой, получено {type(tenant_id).__name__}")

    try:
        mappings = _load_json(row.get("mappings"))
    except ValueError as e:
        return DecodeFailure(f"mappings тенанта {tenant_id} не является JSON: {e}")

    if mappings is None:
        mappings = {}
    if not isinstance(mappings, dict):
        return DecodeFailure(f"mappings тенанта {tenant_id} должен быть объектом, получено {type(mappings).__name__}")

    return Decoded(TenantDocument(tenant_id=tenant_id, mappings=dict(mappings)))


def _decode_revisions(raw: Any) -> "DecodeResult[List[RevisionDocument]]":
    if raw is None:
        return Decoded([])
    if not isinstance(raw, list):
        return DecodeFailure(f"revisions должен быть массивом, получено {type(raw).__name__}")

    revisions = []
    for index, item in enumerate(raw, start=1):
        if not isinstance(item, dict):
            return DecodeFailure(f"ревизия {index} должна быть объектом")
        text = item.get("text")
        archived = item.get("archived", False)
        if not isinstance(text, str):
            return DecodeFailure(f"text ревизии {index} должен быть строкой")
        if not isinstance(archived, bool):
            return DecodeFailure(f"archived ревизии {index} должен быть bool")
        revisions.append(RevisionDocument(text=text, archived=archived))
    return Decoded(revisions)


def decode_query(row: Dict[str, Any]) -> "DecodeResult[QueryDocument]":
    """Разбор строки таблицы query"""
    namespace = row.get("namespace")
    name = row.get("name")
    size = row.get("size")
    archived = row.get("archived", False)

    if not isinstance(namespace, str) or not isinstance(name, str):
        return DecodeFailure("namespace и name запроса должны быть строками")
    # bool является подклассом int
    if not isinstance(size, int) or isinstance(size, bool) or size < 0:
        return DecodeFailure(f"size запроса {namespace}/{name} должен быть неотрицательным целым")
    if not isinstance(archived, bool):
        return DecodeFailure(f"archived запроса {namespace}/{name} должен быть bool")

    try:
        raw_revisions = _load_json(row.get("revisions"))
    except ValueError as e:
        return DecodeFailure(f"revisions запроса {namespace}/{name} не является JSON: {e}")

    revisions = _decode_revisions(raw_revisions)
    if not revisions.ok:
        return DecodeFailure(f"запрос {namespace}/{name}: {revisions.reason}")
    if len(revisions.value) != size:
        return DecodeFailure(
            f"запрос {namespace}/{name}: size={size}, а ревизий {len(revisions.value)}"
        )

    return Decoded(QueryDocument(
        namespace=namespace,
        name=name,
        size=size,
        archived=archived,
        revisions=revisions.value,
    ))
