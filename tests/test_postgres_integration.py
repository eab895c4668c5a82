"""
Проверки на настоящем PostgreSQL.
Запуск: QUERY_REGISTRY_TEST_DSN="dbname=restql_test" pytest tests/test_postgres_integration.py
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from query_registry.core.exceptions import (
    CommunicationFailure,
    InvalidQueryText,
    InvalidRevision,
    MappingsNotFound,
    NamespaceNotFound,
    QueryNotFound,
)
from query_registry.core.timeouts import OperationBudget
from query_registry.database_facade import QueryRegistryDatabase


@pytest.fixture
def store(postgres_manager):
    return QueryRegistryDatabase(postgres_manager)


def revision_texts(saved_query):
    return [(r.revision, r.text, r.archived) for r in saved_query.revisions]


class TestMappings:

    def test_set_mapping_creates_tenant(self, store):
        store.set_mapping("acme", "hero", "http://hero.api/heroes/:id")

        mappings = store.find_mappings_for_tenant("acme")

        assert [(m.resource_name, m.url, m.path_params) for m in mappings] == [
            ("hero", "http://hero.api/heroes/:id", ("id",)),
        ]

    def test_set_mapping_is_idempotent_and_keeps_other_bindings(self, store):
        store.set_mapping("acme", "hero", "http://hero.api")
        store.set_mapping("acme", "planet", "http://planet.api")
        store.set_mapping("acme", "hero", "http://hero.api")

        mappings = {m.resource_name: m.url for m in store.find_mappings_for_tenant("acme")}

        assert mappings == {"hero": "http://hero.api", "planet": "http://planet.api"}
        assert store.find_all_tenants() == ["acme"]

    def test_set_mapping_replaces_url(self, store):
        store.set_mapping("acme", "hero", "http://old.api")
        store.set_mapping("acme", "hero", "https://new.api")

        assert [m.url for m in store.find_mappings_for_tenant("acme")] == ["https://new.api"]

    def test_unknown_tenant(self, store):
        with pytest.raises(MappingsNotFound):
            store.find_mappings_for_tenant("ghost")

    def test_find_all_tenants_on_empty_storage(self, store):
        assert store.find_all_tenants() == []


class TestRevisions:

    def test_revisions_are_numbered_in_append_order(self, store):
        assert store.create_query_revision("heroes", "list", "A") == 1
        assert store.create_query_revision("heroes", "list", "B") == 2
        assert store.create_query_revision("heroes", "list", "C") == 3

        assert store.find_query("heroes", "list", 1).text == "A"
        assert store.find_query("heroes", "list", 3).text == "C"
        with pytest.raises(InvalidRevision):
            store.find_query("heroes", "list", 0)
        with pytest.raises(InvalidRevision):
            store.find_query("heroes", "list", 4)

    def test_concurrent_appends_get_distinct_numbers(self, store):
        with ThreadPoolExecutor(max_workers=4) as executor:
            numbers = list(executor.map(
                lambda i: store.create_query_revision("heroes", "race", f"text {i}"),
                range(20),
            ))

        assert sorted(numbers) == list(range(1, 21))
        texts = {store.find_query("heroes", "race", n).text for n in range(1, 21)}
        assert len(texts) == 20

    def test_text_with_nul_is_rejected(self, store):
        with pytest.raises(InvalidQueryText):
            store.create_query_revision("heroes", "list", "from hero\x00x")

        with pytest.raises(NamespaceNotFound):
            store.find_queries_for_namespace("heroes", False)

    def test_identifier_with_nul_is_communication_failure(self, store):
        with pytest.raises(CommunicationFailure):
            store.create_query_revision("n\x00s", "list", "text")

    def test_missing_query(self, store):
        with pytest.raises(QueryNotFound):
            store.find_query("nsX", "missing", 1)
        with pytest.raises(QueryNotFound):
            store.find_query_with_all_revisions("nsX", "missing", False)

    def test_namespaces(self, store):
        store.create_query_revision("heroes", "list", "A")
        store.create_query_revision("planets", "list", "B")
        store.create_query_revision("heroes", "detail", "C")

        assert store.find_all_namespaces() == ["heroes", "planets"]

    def test_missing_namespace_and_empty_listing(self, store):
        store.create_query_revision("heroes", "list", "A")

        with pytest.raises(NamespaceNotFound):
            store.find_queries_for_namespace("ghost", False)
        assert store.find_queries_for_namespace("heroes", True) == []


class TestArchiving:

    @pytest.fixture
    def three_revisions(self, store):
        for text in ("v1", "v2", "v3"):
            store.create_query_revision("heroes", "list", text)

    @pytest.mark.usefixtures("three_revisions")
    def test_listing_filters_by_revision_flag(self, store):
        store.update_revision_archiving("heroes", "list", 2, True)

        archived = store.find_queries_for_namespace("heroes", True)
        active = store.find_queries_for_namespace("heroes", False)

        assert [revision_texts(q) for q in archived] == [[(2, "v2", True)]]
        assert [revision_texts(q) for q in active] == [[(1, "v1", False), (3, "v3", False)]]

    @pytest.mark.usefixtures("three_revisions")
    def test_archive_query_cascades_to_revisions(self, store):
        store.update_query_archiving("heroes", "list", True)

        query = store.find_query_with_all_revisions("heroes", "list", True)
        assert query.archived is True
        assert [r.revision for r in query.revisions] == [1, 2, 3]

        store.update_query_archiving("heroes", "list", False)

        query = store.find_query_with_all_revisions("heroes", "list", True)
        assert query.archived is False
        assert [r.revision for r in query.revisions] == [1, 2, 3]

    @pytest.mark.usefixtures("three_revisions")
    def test_unarchive_revision_clears_query_flag(self, store):
        store.update_query_archiving("heroes", "list", True)
        store.update_revision_archiving("heroes", "list", 2, False)

        query = store.find_query_with_all_revisions("heroes", "list", False)
        assert query.archived is False
        assert revision_texts(query) == [(2, "v2", False)]

    @pytest.mark.usefixtures("three_revisions")
    def test_archive_revision_keeps_query_flag(self, store):
        store.update_revision_archiving("heroes", "list", 1, True)

        assert store.find_query_with_all_revisions("heroes", "list", True).archived is False
        assert store.find_query("heroes", "list", 1).archived is True

    @pytest.mark.usefixtures("three_revisions")
    def test_out_of_range_revision_changes_nothing(self, store):
        with pytest.raises(InvalidRevision):
            store.update_revision_archiving("heroes", "list", 4, True)
        with pytest.raises(InvalidRevision):
            store.update_revision_archiving("heroes", "list", 0, True)

        assert store.find_queries_for_namespace("heroes", True) == []

    def test_archiving_missing_query(self, store):
        with pytest.raises(QueryNotFound):
            store.update_query_archiving("nsX", "missing", True)
        with pytest.raises(QueryNotFound):
            store.update_revision_archiving("nsX", "missing", 1, True)

    @pytest.mark.usefixtures("three_revisions")
    def test_new_revision_after_archiving_is_active(self, store):
        store.update_query_archiving("heroes", "list", True)

        assert store.create_query_revision("heroes", "list", "v4") == 4
        assert store.find_query("heroes", "list", 4).archived is False


def test_statement_exceeding_budget_is_cancelled(postgres_manager):
    budget = OperationBudget.derive(0, 0.2)

    with pytest.raises(CommunicationFailure):
        postgres_manager.fetch_one("SELECT pg_sleep(5)", None, budget)

    assert postgres_manager.fetch_one("SELECT 1 AS ok", None, budget) == {"ok": 1}
