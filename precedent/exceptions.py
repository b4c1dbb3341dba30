"""
Custom exceptions for Precedent GraphRAG.

This module provides a hierarchy of domain-specific exceptions
so callers can tell connectivity problems apart from query defects
and bad input.
"""

from __future__ import annotations

from typing import Optional


class PrecedentError(Exception):
    """
    Base exception for all precedent-retrieval errors.

    Attributes:
        message: Human-readable error message.
        details: Optional additional context for debugging.
    """

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class DatabaseConnectionError(PrecedentError):
    """Raised when the Neo4j server cannot be reached."""

    def __init__(
        self,
        message: str = "Failed to connect to Neo4j database",
        uri: Optional[str] = None,
    ) -> None:
        details = {"uri": uri} if uri else {}
        super().__init__(message, details)


class DatabaseAuthError(DatabaseConnectionError):
    """Raised when Neo4j rejects the configured credentials."""

    def __init__(
        self,
        message: str = "Neo4j rejected the configured credentials",
        uri: Optional[str] = None,
    ) -> None:
        super().__init__(message, uri)


class QueryExecutionError(PrecedentError):
    """Raised when Neo4j rejects a query (syntax or other client error)."""

    def __init__(
        self,
        message: str = "Failed to execute graph query",
        query: Optional[str] = None,
        code: Optional[str] = None,
    ) -> None:
        details = {}
        if query:
            # Keep the first line only; full queries are logged at debug level
            details["query"] = query.strip().splitlines()[0] if query.strip() else query
        if code:
            details["code"] = code
        super().__init__(message, details)


class AnalysisError(PrecedentError):
    """Raised when a query-analysis response cannot be parsed."""

    def __init__(
        self,
        message: str = "Failed to parse query analysis",
        response_sample: Optional[str] = None,
    ) -> None:
        details = {}
        if response_sample:
            details["response_sample"] = (
                response_sample[:100] + "..." if len(response_sample) > 100 else response_sample
            )
        super().__init__(message, details)


class ValidationError(PrecedentError):
    """Raised when caller input fails validation."""

    def __init__(
        self,
        message: str = "Data validation failed",
        field: Optional[str] = None,
        value: Optional[str] = None,
    ) -> None:
        self.field = field
        details = {}
        if field:
            details["field"] = field
        if value:
            details["value"] = str(value)
        super().__init__(message, details)
