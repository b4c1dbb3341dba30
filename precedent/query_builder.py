"""
Traversal query builder for precedent search.

Builds the Cypher that matches Case nodes (optionally filtered by
principle) and collects the cases they reach over CITES, OVERRULES or
APPLIES_TO edges. Pure functions only; nothing here touches the
database.
"""

from __future__ import annotations

from typing import Any, Iterable, NamedTuple, Optional

from precedent.exceptions import ValidationError
from precedent.models import QueryAnalysis, RelationshipType

# Upper bound on matched cases per search; narrower queries get more
# specific results, there is no paging
MAX_CASES = 10

TRAVERSABLE_RELATIONSHIPS: tuple[str, ...] = tuple(t.value for t in RelationshipType)


class TraversalQuery(NamedTuple):
    """Cypher text plus the parameters it binds."""

    text: str
    parameters: dict[str, Any]


def resolve_relationship_types(relationship_types: Optional[Iterable[str]] = None) -> list[str]:
    """
    Check caller-supplied relationship types against the traversal allow-list.

    Args:
        relationship_types: Types to follow; None means all traversable types.

    Returns:
        Upper-cased types in allow-list order, without duplicates.

    Raises:
        ValidationError: If a type is not traversable or none are given.
    """
    if relationship_types is None:
        return list(TRAVERSABLE_RELATIONSHIPS)

    requested = set()
    for rel_type in relationship_types:
        normalized = str(rel_type.value if isinstance(rel_type, RelationshipType) else rel_type)
        normalized = normalized.strip().upper()
        if normalized not in TRAVERSABLE_RELATIONSHIPS:
            raise ValidationError(
                f"Invalid relationship type: {rel_type}. "
                f"Must be one of {', '.join(TRAVERSABLE_RELATIONSHIPS)}",
                field="relationship_types",
                value=str(rel_type),
            )
        requested.add(normalized)

    if not requested:
        raise ValidationError(
            "At least one relationship type is required",
            field="relationship_types",
        )
    return [t for t in TRAVERSABLE_RELATIONSHIPS if t in requested]


def build_traversal_query(
    hints: QueryAnalysis,
    relationship_types: Optional[Iterable[str]] = None,
) -> TraversalQuery:
    """
    Build the search query for a set of hints.

    Every Case is a candidate. When ``hints.principles`` is non-empty the
    candidates are restricted to cases involving a principle whose display
    name is in that list (bound as ``$principles``). Each candidate is
    returned with the distinct cases it points to over the traversable
    relationship types, capped at ``MAX_CASES`` rows.

    Args:
        hints: Output of query analysis.
        relationship_types: Optional subset of the traversable types.

    Returns:
        The query text and its parameters.

    Example:
        >>> query = build_traversal_query(QueryAnalysis(principles=["Federalism"]))
        >>> query.parameters
        {'principles': ['Federalism'], 'limit': 10}
    """
    types = resolve_relationship_types(relationship_types)

    clauses = ["MATCH (c:Case)"]
    parameters: dict[str, Any] = {}

    if hints.principles:
        clauses.append("MATCH (c)-[:INVOLVES_PRINCIPLE]->(p:Principle)")
        clauses.append("WHERE p.name IN $principles")
        parameters["principles"] = list(hints.principles)

    # Types come from the allow-list above, never from the caller directly
    clauses.append(f"OPTIONAL MATCH (c)-[r:{'|'.join(types)}]->(related:Case)")
    clauses.append("RETURN c, collect(DISTINCT related) AS relatedCases")
    clauses.append("LIMIT $limit")
    parameters["limit"] = MAX_CASES

    return TraversalQuery("\n".join(clauses), parameters)
