"""
Graph schema and ingestion for the legal precedent graph.

Declares the uniqueness constraints the graph relies on and upserts
Case nodes, Principle nodes, INVOLVES_PRINCIPLE edges and typed
case-to-case relationships. Every write is MERGE-then-SET, so replaying
an ingestion leaves the graph unchanged.

Example:
    >>> schema = GraphSchemaManager(get_graph_store())
    >>> schema.initialize_schema()
    >>> schema.ingest_case({"id": "roe_v_wade_1973", "name": "Roe v. Wade", ...})
    >>> schema.create_relationship("dobbs_v_jackson_2022", "roe_v_wade_1973", "overrules")
    1
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Union

from pydantic import ValidationError as PydanticValidationError

from precedent.exceptions import ValidationError
from precedent.graph_store import GraphStore
from precedent.models import LegalCase

logger = logging.getLogger(__name__)

# Relationship types are written into Cypher verbatim, so they must be
# plain identifiers (Cypher cannot parameterize a relationship type)
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

CONSTRAINTS = (
    ("case_id", "CREATE CONSTRAINT case_id IF NOT EXISTS FOR (c:Case) REQUIRE c.id IS UNIQUE"),
    ("principle_id", "CREATE CONSTRAINT principle_id IF NOT EXISTS FOR (p:Principle) REQUIRE p.id IS UNIQUE"),
)

INGEST_CASE_QUERY = """
MERGE (c:Case {id: $id})
SET c.name = $name,
    c.year = $year,
    c.court = $court,
    c.summary = $summary,
    c.fullText = $fullText
WITH c
UNWIND $principles AS principle
MERGE (p:Principle {id: principle.id})
SET p.name = principle.name
MERGE (c)-[:INVOLVES_PRINCIPLE]->(p)
"""

RELATIONSHIP_QUERY_TEMPLATE = """
MATCH (source:Case {{id: $from_id}})
MATCH (target:Case {{id: $to_id}})
MERGE (source)-[r:{rel_type}]->(target)
ON CREATE SET r.weight = 1.0
RETURN count(r) AS touched
"""

CASE_COUNT_QUERY = """
MATCH (c:Case)
WITH count(c) AS cases
OPTIONAL MATCH (p:Principle)
RETURN cases, count(p) AS principles
"""

LINK_COUNT_QUERY = """
MATCH (:Case)-[r]->(:Case)
RETURN type(r) AS type, count(r) AS links
ORDER BY type
"""


def validate_identifier(value: str, field_name: str) -> str:
    """
    Validate that a string is a safe Cypher identifier.

    Args:
        value: The string to validate.
        field_name: Name of the field (for error messages).

    Returns:
        The validated string.

    Raises:
        ValidationError: If the string is not a valid identifier.
    """
    if not value or not IDENTIFIER_PATTERN.match(value):
        raise ValidationError(
            message=f"Invalid {field_name}: must be alphanumeric with underscores",
            field=field_name,
            value=value
        )
    return value


def normalize_relationship_type(rel_type: str) -> str:
    """Upper-case a caller-supplied relationship type and check it is safe to embed."""
    return validate_identifier((rel_type or "").strip().upper(), "rel_type")


class GraphSchemaManager:
    """
    Owns the shape of the precedent graph.

    Attributes:
        store: GraphStore used for every write.
    """

    def __init__(self, store: GraphStore) -> None:
        self.store = store

    def initialize_schema(self) -> None:
        """
        Create uniqueness constraints on Case.id and Principle.id.

        Uses ``IF NOT EXISTS``, so existing constraints are left alone and
        the call is safe to repeat.
        """
        for name, query in CONSTRAINTS:
            self.store.execute(query)
            logger.debug(f"Constraint '{name}' ensured.")

        logger.info(f"Ensured {len(CONSTRAINTS)} database constraints.")

    def ingest_case(self, case: Union[LegalCase, Mapping[str, Any]]) -> LegalCase:
        """
        Upsert a Case node together with its principles.

        The Case is merged by id and its scalar properties overwritten.
        Each principle is merged by its derived id, its display name set,
        and linked with INVOLVES_PRINCIPLE.

        Args:
            case: A LegalCase or a mapping in the ingestion shape
                (``id, name, year, court, summary, principles, fullText?``).

        Returns:
            The validated case.

        Raises:
            ValidationError: If the input is not a valid case.
        """
        legal_case = self._coerce_case(case)
        principles = [
            {"id": principle.id, "name": principle.name}
            for principle in legal_case.principle_nodes()
        ]

        self.store.execute(
            INGEST_CASE_QUERY,
            {**legal_case.to_properties(), "principles": principles},
        )
        logger.info(f"Ingested case: {legal_case.name} ({len(principles)} principles)")
        return legal_case

    def create_relationship(self, from_id: str, to_id: str, rel_type: str) -> int:
        """
        Merge a directed, typed edge between two existing cases.

        The type is upper-cased before use. A new edge gets ``weight = 1.0``;
        an existing edge is left as it is. If either case does not exist
        nothing is written and no error is raised.

        Args:
            from_id: Id of the source case.
            to_id: Id of the target case.
            rel_type: Relationship type, e.g. "overrules".

        Returns:
            Number of edges matched or created (0 or 1).

        Raises:
            ValidationError: If the type is not a plain identifier.
        """
        relationship_type = normalize_relationship_type(rel_type)
        query = RELATIONSHIP_QUERY_TEMPLATE.format(rel_type=relationship_type)

        rows = self.store.execute(query, {"from_id": from_id, "to_id": to_id})
        touched = rows[0]["touched"] if rows else 0

        if touched:
            logger.info(f"Created relationship: {from_id} -[{relationship_type}]-> {to_id}")
        else:
            logger.warning(
                f"Relationship {from_id} -[{relationship_type}]-> {to_id} skipped: "
                "case not found"
            )
        return touched

    def summarize_graph(self) -> dict[str, Any]:
        """Count cases, principles and case-to-case links by type."""
        counts = self.store.execute(CASE_COUNT_QUERY)
        links = self.store.execute(LINK_COUNT_QUERY)
        row = counts[0] if counts else {}
        return {
            "cases": row.get("cases", 0),
            "principles": row.get("principles", 0),
            "links": {link["type"]: link["links"] for link in links},
        }

    @staticmethod
    def _coerce_case(case: Union[LegalCase, Mapping[str, Any]]) -> LegalCase:
        if isinstance(case, LegalCase):
            return case
        try:
            return LegalCase.model_validate(case)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"])
            raise ValidationError(
                f"Invalid case: {first['msg']}",
                field=field,
                value=(case or {}).get("id") if isinstance(case, Mapping) else None,
            ) from e
