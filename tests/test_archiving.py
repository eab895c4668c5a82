from query_registry.core import archiving
from query_registry.core.archiving import ArchivingTransition


def test_query_transitions():
    assert archiving.transition_for_query(True) is ArchivingTransition.ARCHIVE_QUERY
    assert archiving.transition_for_query(False) is ArchivingTransition.UNARCHIVE_QUERY


def test_revision_transitions():
    assert archiving.transition_for_revision(True) is ArchivingTransition.ARCHIVE_REVISION
    assert archiving.transition_for_revision(False) is ArchivingTransition.UNARCHIVE_REVISION


def test_every_transition_has_a_single_statement():
    for transition in ArchivingTransition:
        statement = archiving.statement_for(transition)
        assert statement.strip().upper().startswith("UPDATE QUERY")
        assert statement.count(";") == 0


def test_archive_query_rewrites_revisions_and_unarchive_does_not():
    assert "revisions" in archiving.ARCHIVE_QUERY_SQL
    assert "revisions" not in archiving.UNARCHIVE_QUERY_SQL


def test_only_unarchiving_a_revision_touches_the_document_flag():
    assert "archived = CASE" in archiving.UNARCHIVE_REVISION_SQL
    assert "archived = CASE" not in archiving.ARCHIVE_REVISION_SQL
