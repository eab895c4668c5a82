"""
MODULE: query_registry.core.revision_log
RESPONSIBILITY: Append-only, 1-indexed revision log of a query document.
ALLOWED: psycopg2.extras (Json adapter), query_registry.core models/exceptions.
FORBIDDEN: Executing SQL, connection handling.
ERRORS: InvalidRevision, InvalidQueryText.

Журнал ревизий запроса

Ревизии только добавляются. N-я добавленная ревизия навсегда доступна
под номером N; номера плотные и начинаются с 1.
"""

from typing import Any, Dict, List

from psycopg2.extras import Json

from query_registry.core.exceptions import InvalidQueryText, InvalidRevision
from query_registry.core.models import QueryDocument, RevisionDocument, SavedQueryRevision

# Создание документа (size=1) или атомарный инкремент size вместе с добавлением ревизии
APPEND_REVISION_SQL = """
    INSERT INTO query (namespace, name, size, archived, revisions)
    VALUES (%(namespace)s, %(name)s, 1, FALSE, %(revisions)s::jsonb)
    ON CONFLICT (namespace, name) DO UPDATE
    SET size = query.size + 1,
        revisions = query.revisions || EXCLUDED.revisions
    RETURNING size
"""


def append_params(namespace: str, name: str, text: str) -> Dict[str, Any]:
    """
    Параметры APPEND_REVISION_SQL; новая ревизия никогда не архивирована

    Raises:
        InvalidQueryText: Текст содержит NUL, который JSONB хранить не умеет
    """
    if "\x00" in text:
        raise InvalidQueryText(
            f"Текст запроса {namespace}/{name} содержит символ NUL",
            namespace=namespace,
            name=name,
        )
    revision = RevisionDocument(text=text, archived=False)
    return {
        "namespace": namespace,
        "name": name,
        "revisions": Json([revision.to_dict()]),
    }


def check_revision_number(namespace: str, name: str, revision: int) -> None:
    """
    Проверка номера ревизии без обращения к документу

    0 и отрицательные номера недопустимы всегда.

    Raises:
        InvalidRevision: Если revision < 1
    """
    if revision < 1:
        raise InvalidRevision(
            f"Некорректная ревизия для запроса {namespace}/{name}: ревизия {revision}",
            revision=revision,
        )


def resolve_revision(document: QueryDocument, revision: int) -> RevisionDocument:
    """
    Ревизия документа по номеру 1..size

    Raises:
        InvalidRevision: Если номер вне диапазона [1, size]
    """
    check_revision_number(document.namespace, document.name, revision)
    found = document.revision_at(revision)
    if found is None:
        raise InvalidRevision(
            f"Некорректная ревизия для запроса {document.namespace}/{document.name}: "
            f"последняя ревизия {document.size}, запрошена {revision}",
            revision=revision,
            size=document.size,
        )
    return found


def to_saved_revision(document: QueryDocument, revision: int) -> SavedQueryRevision:
    found = resolve_revision(document, revision)
    return SavedQueryRevision(name=document.name, text=found.text, revision=revision, archived=found.archived)


def matches_archived(document: QueryDocument, archived: bool) -> bool:
    """
    Попадает ли запрос в выборку по признаку архивации

    Флаг документа задаёт состояние ревизий по умолчанию, а ревизия с
    другим флагом является исключением из него. Запрос попадает в выборку,
    если совпадает флаг документа или флаг хотя бы одной ревизии.
    """
    if document.archived == archived:
        return True
    return any(revision.archived == archived for revision in document.revisions)


def select_revisions(document: QueryDocument, archived: bool) -> List[SavedQueryRevision]:
    """Ревизии с заданным флагом; номера сохраняются, остальные ревизии опускаются"""
    return [
        SavedQueryRevision(name=document.name, text=revision.text, revision=number, archived=revision.archived)
        for number, revision in enumerate(document.revisions, start=1)
        if revision.archived == archived
    ]
