"""
Unit tests for the GraphSchemaManager module.

Query-shape tests use a Mock store; behavioural tests use the
in-memory graph from conftest.
"""

import pytest
from unittest.mock import Mock

pytestmark = pytest.mark.unit


@pytest.fixture
def mock_store() -> Mock:
    store = Mock()
    store.execute.return_value = []
    return store


@pytest.fixture
def schema(mock_store: Mock):
    from precedent.graph_schema import GraphSchemaManager

    return GraphSchemaManager(mock_store)


@pytest.fixture
def memory_schema(memory_store):
    from precedent.graph_schema import GraphSchemaManager

    return GraphSchemaManager(memory_store)


class TestInitializeSchema:
    """Tests for constraint creation."""

    def test_creates_case_and_principle_constraints(self, schema, mock_store: Mock):
        schema.initialize_schema()

        queries = [call[0][0] for call in mock_store.execute.call_args_list]
        assert len(queries) == 2
        assert all("IF NOT EXISTS" in q for q in queries)
        assert any("(c:Case) REQUIRE c.id IS UNIQUE" in q for q in queries)
        assert any("(p:Principle) REQUIRE p.id IS UNIQUE" in q for q in queries)

    def test_is_idempotent(self, memory_schema, memory_store):
        memory_schema.initialize_schema()
        memory_schema.initialize_schema()

        assert memory_store.constraints == {"case_id", "principle_id"}


class TestIngestCase:
    """Tests for case ingestion."""

    def test_executes_merge_with_case_properties(self, schema, mock_store: Mock, dobbs_case):
        schema.ingest_case(dobbs_case)

        mock_store.execute.assert_called_once()
        query, params = mock_store.execute.call_args[0]
        assert "MERGE (c:Case {id: $id})" in query
        assert "MERGE (c)-[:INVOLVES_PRINCIPLE]->(p)" in query
        assert params["id"] == "dobbs_v_jackson_2022"
        assert params["year"] == 2022
        assert params["fullText"] == ""

    def test_principles_carry_derived_ids(self, schema, mock_store: Mock, dobbs_case):
        schema.ingest_case(dobbs_case)

        params = mock_store.execute.call_args[0][1]
        assert params["principles"] == [
            {"id": "federalism", "name": "Federalism"},
            {"id": "stare_decisis", "name": "Stare Decisis"},
            {"id": "constitutional_interpretation", "name": "Constitutional Interpretation"},
        ]

    def test_values_are_never_interpolated(self, schema, mock_store: Mock, dobbs_case):
        schema.ingest_case(dobbs_case)

        query = mock_store.execute.call_args[0][0]
        assert "dobbs_v_jackson_2022" not in query
        assert "Federalism" not in query

    def test_accepts_legal_case_model(self, schema, mock_store: Mock):
        from precedent.models import LegalCase

        case = LegalCase(id="x", name="X", year=2001, court="C", summary="S", fullText="Body")

        returned = schema.ingest_case(case)

        assert returned is case
        assert mock_store.execute.call_args[0][1]["fullText"] == "Body"

    def test_rejects_invalid_case(self, schema, mock_store: Mock):
        from precedent.exceptions import ValidationError

        with pytest.raises(ValidationError) as exc_info:
            schema.ingest_case({"id": "x", "name": "X", "court": "C", "summary": "S"})

        assert exc_info.value.field == "year"
        mock_store.execute.assert_not_called()

    def test_reingest_overwrites_single_node(self, memory_schema, memory_store, roe_case):
        """Verify a second ingestion updates the existing node in place."""
        memory_schema.ingest_case(roe_case)
        memory_schema.ingest_case({**roe_case, "summary": "Revised summary", "year": 1974})

        assert list(memory_store.cases) == ["roe_v_wade_1973"]
        assert memory_store.cases["roe_v_wade_1973"]["summary"] == "Revised summary"
        assert memory_store.cases["roe_v_wade_1973"]["year"] == 1974

    def test_shared_principle_resolves_to_one_node(self, memory_schema, memory_store, sample_dataset):
        for case in sample_dataset["cases"]:
            memory_schema.ingest_case(case)

        assert "data_privacy" in memory_store.principles
        linked = [case_id for case_id, pid in memory_store.involves if pid == "data_privacy"]
        assert sorted(linked) == ["hipaa_privacy_2018", "smith_v_medical_2020"]

    def test_whitespace_variants_share_principle(self, memory_schema, memory_store, roe_case, dobbs_case):
        memory_schema.ingest_case({**roe_case, "principles": ["Data Privacy"]})
        memory_schema.ingest_case({**dobbs_case, "principles": ["data   privacy"]})

        assert list(memory_store.principles) == ["data_privacy"]
        assert len(memory_store.involves) == 2

    def test_padded_id_rejected_before_write(self, memory_schema, memory_store, roe_case):
        """Verify a padded id fails instead of being stored under another id."""
        from precedent.exceptions import ValidationError

        with pytest.raises(ValidationError) as exc_info:
            memory_schema.ingest_case({**roe_case, "id": "roe_v_wade_1973 "})

        assert exc_info.value.field == "id"
        assert memory_store.cases == {}

    def test_ingested_id_links_unchanged(self, memory_schema, memory_store, roe_case, dobbs_case):
        """Verify the id given at ingestion is the id relationships match on."""
        memory_schema.ingest_case(roe_case)
        memory_schema.ingest_case(dobbs_case)

        touched = memory_schema.create_relationship(dobbs_case["id"], roe_case["id"], "OVERRULES")

        assert touched == 1
        assert list(memory_store.cases) == ["roe_v_wade_1973", "dobbs_v_jackson_2022"]


class TestCreateRelationship:
    """Tests for typed case relationships."""

    def test_type_is_upper_cased_into_query(self, schema, mock_store: Mock):
        mock_store.execute.return_value = [{"touched": 1}]

        touched = schema.create_relationship("a", "b", "overrules")

        query, params = mock_store.execute.call_args[0]
        assert "MERGE (source)-[r:OVERRULES]->(target)" in query
        assert "ON CREATE SET r.weight = 1.0" in query
        assert params == {"from_id": "a", "to_id": "b"}
        assert touched == 1

    def test_rejects_unsafe_type(self, schema, mock_store: Mock):
        """Verify relationship types that could inject Cypher are rejected."""
        from precedent.exceptions import ValidationError

        with pytest.raises(ValidationError) as exc_info:
            schema.create_relationship("a", "b", "CITES]->(x) DETACH DELETE x //")

        assert exc_info.value.field == "rel_type"
        mock_store.execute.assert_not_called()

    def test_rejects_empty_type(self, schema):
        from precedent.exceptions import ValidationError

        with pytest.raises(ValidationError):
            schema.create_relationship("a", "b", "  ")

    def test_accepts_types_outside_traversal_set(self, memory_schema, memory_store, roe_case, dobbs_case):
        memory_schema.ingest_case(roe_case)
        memory_schema.ingest_case(dobbs_case)

        touched = memory_schema.create_relationship(
            "dobbs_v_jackson_2022", "roe_v_wade_1973", "distinguishes"
        )

        assert touched == 1
        assert memory_store.edge_count("dobbs_v_jackson_2022", "roe_v_wade_1973", "DISTINGUISHES") == 1

    def test_is_idempotent(self, memory_schema, memory_store, roe_case, dobbs_case):
        """Verify creating the same relationship twice leaves one edge."""
        memory_schema.ingest_case(roe_case)
        memory_schema.ingest_case(dobbs_case)

        memory_schema.create_relationship("dobbs_v_jackson_2022", "roe_v_wade_1973", "OVERRULES")
        memory_schema.create_relationship("dobbs_v_jackson_2022", "roe_v_wade_1973", "overrules")

        assert memory_store.edge_count("dobbs_v_jackson_2022", "roe_v_wade_1973", "OVERRULES") == 1
        assert memory_store.edges[("dobbs_v_jackson_2022", "OVERRULES", "roe_v_wade_1973")] == {"weight": 1.0}

    def test_missing_case_is_silent_noop(self, memory_schema, memory_store, roe_case):
        """Verify a missing endpoint creates nothing and raises nothing."""
        memory_schema.ingest_case(roe_case)

        touched = memory_schema.create_relationship("no_such_case", "roe_v_wade_1973", "CITES")

        assert touched == 0
        assert memory_store.edges == {}

    def test_empty_result_counts_as_zero(self, schema, mock_store: Mock):
        mock_store.execute.return_value = []

        assert schema.create_relationship("a", "b", "CITES") == 0


class TestSummarizeGraph:
    """Tests for the graph summary."""

    def test_counts_cases_principles_and_links(self, memory_schema, sample_dataset):
        for case in sample_dataset["cases"]:
            memory_schema.ingest_case(case)
        for rel in sample_dataset["relationships"]:
            memory_schema.create_relationship(rel["from"], rel["to"], rel["type"])

        summary = memory_schema.summarize_graph()

        assert summary == {
            "cases": 4,
            "principles": 10,
            "links": {"APPLIES_TO": 1, "CITES": 1, "OVERRULES": 1},
        }

    def test_empty_graph(self, memory_schema):
        assert memory_schema.summarize_graph() == {"cases": 0, "principles": 0, "links": {}}


class TestValidateIdentifier:
    """Tests for the validate_identifier function."""

    def test_valid_identifiers(self):
        from precedent.graph_schema import validate_identifier

        for identifier in ["CITES", "APPLIES_TO", "_internal", "Rel2"]:
            assert validate_identifier(identifier, "test_field") == identifier

    def test_invalid_identifiers(self):
        from precedent.exceptions import ValidationError
        from precedent.graph_schema import validate_identifier

        for identifier in ["has space", "has;semicolon", "has'quote", "2LEADING", "has-dash", ""]:
            with pytest.raises(ValidationError):
                validate_identifier(identifier, "test_field")
