"""
Precedent GraphRAG - Core Module

Legal precedent retrieval over a Neo4j property graph, combining
free-text query analysis with typed graph traversal.

This package provides:
    - GraphStore: Shared Neo4j connection and query execution
    - GraphSchemaManager: Constraints and idempotent case ingestion
    - QueryAnalyzer: Free-text query -> principle/keyword hints
    - build_traversal_query: Hints -> bounded Cypher traversal
    - PrecedentSearch: LangGraph search pipeline
    - Models / Exceptions: Pydantic domain models and error hierarchy

Example:
    >>> from precedent import PrecedentSearch, get_graph_store, create_default_analyzer
    >>>
    >>> search = PrecedentSearch(get_graph_store(), create_default_analyzer())
    >>> result = search.search("Which cases overruled a privacy precedent?")
    >>> print(result.to_response()["relatedCases"])
"""

from precedent.graph_store import (
    GraphStore,
    close_graph_store,
    get_graph_store,
)
from precedent.graph_schema import GraphSchemaManager, validate_identifier
from precedent.query_analyzer import (
    ChatModelBackend,
    KeywordBackend,
    QueryAnalyzer,
    TextAnalysisBackend,
    create_default_analyzer,
)
from precedent.query_builder import (
    MAX_CASES,
    TRAVERSABLE_RELATIONSHIPS,
    TraversalQuery,
    build_traversal_query,
)
from precedent.result_assembler import assemble_results
from precedent.search import PrecedentSearch, create_search_workflow, search_cases
from precedent.models import (
    CaseRelationship,
    LegalCase,
    Principle,
    QueryAnalysis,
    RelationshipType,
    SearchResult,
    principle_id,
)
from precedent.exceptions import (
    AnalysisError,
    DatabaseAuthError,
    DatabaseConnectionError,
    PrecedentError,
    QueryExecutionError,
    ValidationError,
)

__version__ = "1.0.0"

__all__ = [
    # Graph access
    "GraphStore",
    "get_graph_store",
    "close_graph_store",
    "GraphSchemaManager",
    "validate_identifier",
    # Query analysis
    "QueryAnalyzer",
    "TextAnalysisBackend",
    "ChatModelBackend",
    "KeywordBackend",
    "create_default_analyzer",
    # Traversal
    "MAX_CASES",
    "TRAVERSABLE_RELATIONSHIPS",
    "TraversalQuery",
    "build_traversal_query",
    "assemble_results",
    # Pipeline
    "PrecedentSearch",
    "create_search_workflow",
    "search_cases",
    # Models
    "CaseRelationship",
    "LegalCase",
    "Principle",
    "QueryAnalysis",
    "RelationshipType",
    "SearchResult",
    "principle_id",
    # Exceptions
    "PrecedentError",
    "DatabaseConnectionError",
    "DatabaseAuthError",
    "QueryExecutionError",
    "AnalysisError",
    "ValidationError",
]
