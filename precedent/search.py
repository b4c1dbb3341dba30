"""
LangGraph workflow for precedent search.

This module defines a linear state machine that orchestrates retrieval:

    analyze_query -> build_query -> execute_query -> assemble_results

Each node is a small function over ``SearchState``; the store and the
analyzer are injected when the workflow is created, so the pipeline runs
against fakes in tests.

Error handling:
    Query analysis never fails (it degrades to keyword hints). Errors
    from the graph store propagate to the caller unchanged and are not
    retried.

Example:
    >>> search = PrecedentSearch(get_graph_store(), create_default_analyzer())
    >>> result = search.search("cases about federalism and stare decisis")
    >>> result.to_response()["cases"]
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional, TypedDict

from langgraph.graph import END, StateGraph

from precedent.graph_store import GraphStore, get_graph_store
from precedent.models import QueryAnalysis, SearchResult
from precedent.query_analyzer import QueryAnalyzer, create_default_analyzer
from precedent.query_builder import build_traversal_query
from precedent.result_assembler import assemble_results

logger = logging.getLogger(__name__)

# =============================================================================
# STATE
# =============================================================================


class SearchState(TypedDict, total=False):
    """State passed between the search workflow nodes."""

    query: str
    timeout: Optional[float]
    analysis: QueryAnalysis
    cypher: str
    parameters: dict[str, Any]
    rows: list[dict[str, Any]]
    result: SearchResult
    metadata: dict[str, Any]


NodeFunc = Callable[[SearchState], SearchState]

# =============================================================================
# WORKFLOW NODES
# =============================================================================


def make_analyze_node(analyzer: QueryAnalyzer) -> NodeFunc:
    def analyze_query(state: SearchState) -> SearchState:
        """Turn the raw query into principle and keyword hints."""
        query = state.get("query", "")
        logger.info(f"Searching for: {query!r}")
        analysis = analyzer.analyze(query, timeout=state.get("timeout"))
        return {**state, "analysis": analysis}

    return analyze_query


def build_query(state: SearchState) -> SearchState:
    """Build the bounded traversal query from the hints."""
    traversal = build_traversal_query(state["analysis"])
    return {
        **state,
        "cypher": traversal.text,
        "parameters": traversal.parameters,
    }


def make_execute_node(store: GraphStore) -> NodeFunc:
    def execute_query(state: SearchState) -> SearchState:
        """Run the traversal query. Store errors are not caught here."""
        metadata: dict[str, Any] = dict(state.get("metadata", {}))
        rows = store.execute(
            state["cypher"],
            state.get("parameters", {}),
            timeout=state.get("timeout"),
        )
        metadata["row_count"] = len(rows)
        metadata["executed_at"] = datetime.now().isoformat()
        return {**state, "rows": rows, "metadata": metadata}

    return execute_query


def assemble(state: SearchState) -> SearchState:
    """Shape the rows into the response payload."""
    result = assemble_results(state.get("rows", []), state["analysis"])
    return {**state, "result": result}


# =============================================================================
# WORKFLOW DEFINITION
# =============================================================================


def create_search_workflow(store: GraphStore, analyzer: QueryAnalyzer) -> StateGraph:
    """
    Create the precedent search workflow.

    The workflow consists of four nodes:
    1. analyze_query: Extract hints from the free-text query
    2. build_query: Turn the hints into a bounded Cypher traversal
    3. execute_query: Run it against the graph store
    4. assemble_results: Flatten rows into cases and related cases

    Args:
        store: Graph store that executes the traversal.
        analyzer: Query analyzer producing the hints.

    Returns:
        Configured StateGraph ready for compilation.
    """
    wf = StateGraph(SearchState)

    wf.add_node("analyze_query", make_analyze_node(analyzer))
    wf.add_node("build_query", build_query)
    wf.add_node("execute_query", make_execute_node(store))
    wf.add_node("assemble_results", assemble)

    wf.set_entry_point("analyze_query")

    wf.add_edge("analyze_query", "build_query")
    wf.add_edge("build_query", "execute_query")
    wf.add_edge("execute_query", "assemble_results")
    wf.add_edge("assemble_results", END)

    return wf


def create_initial_state(query: str, *, timeout: Optional[float] = None) -> SearchState:
    """
    Create a properly initialized state for the workflow.

    Args:
        query: Free-text legal question.
        timeout: Optional timeout applied to both the analysis call and
            the graph query.
    """
    return {
        "query": query,
        "timeout": timeout,
        "metadata": {
            "created_at": datetime.now().isoformat(),
        },
    }


class PrecedentSearch:
    """
    Runs precedent searches over an injected store and analyzer.

    Attributes:
        store: Graph store used for the traversal.
        analyzer: Query analyzer used for the hints.
    """

    def __init__(self, store: GraphStore, analyzer: QueryAnalyzer) -> None:
        self.store = store
        self.analyzer = analyzer
        self.workflow = create_search_workflow(store, analyzer)
        self.app = self.workflow.compile()

    def run(self, query: str, *, timeout: Optional[float] = None) -> SearchState:
        """Invoke the workflow and return its final state."""
        return self.app.invoke(create_initial_state(query, timeout=timeout))

    def search(self, query: str, *, timeout: Optional[float] = None) -> SearchResult:
        """
        Search the precedent graph with a free-text query.

        Args:
            query: Free-text legal question.
            timeout: Seconds allowed for the analysis call and, separately,
                for the graph query.

        Returns:
            Matched cases, related cases and the hints used.

        Raises:
            DatabaseConnectionError: If Neo4j is unreachable or rejects
                the credentials.
            QueryExecutionError: If Neo4j rejects the traversal query.
        """
        return self.run(query, timeout=timeout)["result"]


def search_cases(
    query: str,
    *,
    store: Optional[GraphStore] = None,
    analyzer: Optional[QueryAnalyzer] = None,
    timeout: Optional[float] = None,
) -> dict[str, Any]:
    """
    Search with the shared store and default analyzer unless given others.

    Returns:
        The response payload ``{cases, relatedCases, analysis}``.
    """
    searcher = PrecedentSearch(
        store or get_graph_store(),
        analyzer or create_default_analyzer(),
    )
    return searcher.search(query, timeout=timeout).to_response()


__all__ = [
    "SearchState",
    "PrecedentSearch",
    "build_query",
    "assemble",
    "create_search_workflow",
    "create_initial_state",
    "search_cases",
]
