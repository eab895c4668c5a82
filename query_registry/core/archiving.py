"""
MODULE: query_registry.core.archiving
RESPONSIBILITY: Archiving state machine for query documents and revisions.
ALLOWED: enum, typing.
FORBIDDEN: Executing SQL (only defines statements), connection handling.
ERRORS: None.

Правила архивации запросов

Флаг документа D и флаги ревизий Ri связаны асимметрично:

    | Операция               | D        | Ri          |
    |------------------------|----------|-------------|
    | архивировать запрос    | D=true   | все Ri=true |
    | разархивировать запрос | D=false  | без изменений |
    | архивировать ревизию i | без изм. | Ri=true     |
    | разархивировать рев. i | D=false  | Ri=false    |

Каждый переход выполняется одним UPDATE, чтобы параллельный читатель
не увидел наполовину применённое состояние.
"""

from enum import Enum


class ArchivingTransition(Enum):
    """Переходы состояния архивации"""
    ARCHIVE_QUERY = "archive_query"
    UNARCHIVE_QUERY = "unarchive_query"
    ARCHIVE_REVISION = "archive_revision"
    UNARCHIVE_REVISION = "unarchive_revision"


def transition_for_query(archived: bool) -> ArchivingTransition:
    """Переход для изменения флага архивации всего запроса"""
    return ArchivingTransition.ARCHIVE_QUERY if archived else ArchivingTransition.UNARCHIVE_QUERY


def transition_for_revision(archived: bool) -> ArchivingTransition:
    """Переход для изменения флага архивации одной ревизии"""
    return ArchivingTransition.ARCHIVE_REVISION if archived else ArchivingTransition.UNARCHIVE_REVISION


# Архивация запроса переписывает флаг каждой ревизии в том же UPDATE
ARCHIVE_QUERY_SQL = """
    UPDATE query
    SET archived = TRUE,
        revisions = COALESCE(
            (
                SELECT jsonb_agg(
                    jsonb_set(r.value, '{archived}', 'true'::jsonb)
                    ORDER BY r.ordinality
                )
                FROM jsonb_array_elements(query.revisions) WITH ORDINALITY AS r(value, ordinality)
            ),
            '[]'::jsonb
        )
    WHERE namespace = %(namespace)s AND name = %(name)s
"""

# Флаги ревизий не трогаем
UNARCHIVE_QUERY_SQL = """
    UPDATE query
    SET archived = FALSE
    WHERE namespace = %(namespace)s AND name = %(name)s
"""

# Номер вне [1, size] ничего не меняет; RETURNING size позволяет это распознать
ARCHIVE_REVISION_SQL = """
    UPDATE query
    SET revisions = CASE
            WHEN %(revision)s BETWEEN 1 AND size
            THEN jsonb_set(revisions, ARRAY[(%(revision)s - 1)::text, 'archived'], 'true'::jsonb, false)
            ELSE revisions
        END
    WHERE namespace = %(namespace)s AND name = %(name)s
    RETURNING size
"""

UNARCHIVE_REVISION_SQL = """
    UPDATE query
    SET revisions = CASE
            WHEN %(revision)s BETWEEN 1 AND size
            THEN jsonb_set(revisions, ARRAY[(%(revision)s - 1)::text, 'archived'], 'false'::jsonb, false)
            ELSE revisions
        END,
        archived = CASE
            WHEN %(revision)s BETWEEN 1 AND size THEN FALSE
            ELSE archived
        END
    WHERE namespace = %(namespace)s AND name = %(name)s
    RETURNING size
"""

TRANSITION_SQL = {
    ArchivingTransition.ARCHIVE_QUERY: ARCHIVE_QUERY_SQL,
    ArchivingTransition.UNARCHIVE_QUERY: UNARCHIVE_QUERY_SQL,
    ArchivingTransition.ARCHIVE_REVISION: ARCHIVE_REVISION_SQL,
    ArchivingTransition.UNARCHIVE_REVISION: UNARCHIVE_REVISION_SQL,
}


def statement_for(transition: ArchivingTransition) -> str:
    """SQL-оператор, атомарно применяющий переход"""
    return TRANSITION_SQL[transition]
