"""
Result assembly for precedent search.

Flattens normalized rows of the traversal query into a SearchResult.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from precedent.models import QueryAnalysis, SearchResult

logger = logging.getLogger(__name__)


def node_properties(node: Mapping[str, Any]) -> dict[str, Any]:
    """Return the attribute mapping of a normalized node."""
    return dict(node.get("properties", {}))


def assemble_results(
    rows: Iterable[Mapping[str, Any]],
    analysis: QueryAnalysis,
) -> SearchResult:
    """
    Build the search response from traversal rows.

    Each row carries a matched case under ``c`` and the cases it reaches
    under ``relatedCases``. Null entries left by the optional hop are
    dropped. Related cases are concatenated in row order and may repeat
    when two matched cases reach the same case.

    Args:
        rows: Normalized rows from ``GraphStore.execute``.
        analysis: The hints the query was built from, passed through.

    Returns:
        SearchResult with ``cases``, ``related_cases`` and ``analysis``.
    """
    cases: list[dict[str, Any]] = []
    related_cases: list[dict[str, Any]] = []

    for row in rows:
        cases.append(node_properties(row["c"]))
        related_cases.extend(
            node_properties(related)
            for related in row.get("relatedCases") or []
            if related is not None
        )

    logger.info(f"Found {len(cases)} cases, {len(related_cases)} related cases")
    return SearchResult(cases=cases, related_cases=related_cases, analysis=analysis)
