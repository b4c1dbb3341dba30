"""
Domain models for Precedent GraphRAG.

This module defines Pydantic models for the legal precedent graph
(cases, principles, typed case relationships) and for the structured
data that flows through the search pipeline.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_WHITESPACE_RUN = re.compile(r"\s+")


def principle_id(name: str) -> str:
    """
    Derive the graph identifier of a principle from its display name.

    The name is lower-cased and every run of whitespace becomes a single
    underscore, so "Data Privacy" and "data   privacy" share one node.
    Leading and trailing whitespace is not stripped.

    Args:
        name: Display name of the principle.

    Returns:
        The principle identifier, e.g. ``data_privacy``.
    """
    return _WHITESPACE_RUN.sub("_", name.lower())


class RelationshipType(str, Enum):
    """Case-to-case relationship types followed during retrieval."""

    CITES = "CITES"
    OVERRULES = "OVERRULES"
    APPLIES_TO = "APPLIES_TO"


class Principle(BaseModel):
    """
    A legal doctrine or concept.

    Attributes:
        id: Slug derived from the display name via ``principle_id``.
        name: Display name as first ingested.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Derived principle identifier")
    name: str = Field(..., description="Display name")

    @classmethod
    def from_name(cls, name: str) -> "Principle":
        """Build a Principle whose id is derived from ``name``."""
        return cls(id=principle_id(name), name=name)


class LegalCase(BaseModel):
    """
    A legal decision as accepted for ingestion.

    Accepts the external ingestion shape, so ``fullText`` may be
    given instead of ``full_text``.

    Attributes:
        id: Stable, externally assigned identifier (e.g. ``roe_v_wade_1973``).
        name: Display name of the case.
        year: Decision year.
        court: Issuing court.
        summary: Short description of the holding.
        principles: Display names of the principles the case involves.
        full_text: Optional full opinion text.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1, description="Unique case identifier")
    name: str = Field(..., description="Case name")
    year: int = Field(..., description="Decision year")
    court: str = Field(..., description="Issuing court")
    summary: str = Field(..., description="Case summary")
    principles: list[str] = Field(default_factory=list, description="Principle names")
    full_text: Optional[str] = Field(None, alias="fullText", description="Full opinion text")

    @field_validator("id")
    @classmethod
    def id_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("case id cannot be blank")
        if v != v.strip():
            raise ValueError("case id cannot have surrounding whitespace")
        return v

    def to_properties(self) -> dict[str, Any]:
        """Scalar properties stored on the Case node."""
        return {
            "id": self.id,
            "name": self.name,
            "year": self.year,
            "court": self.court,
            "summary": self.summary,
            "fullText": self.full_text or "",
        }

    def principle_nodes(self) -> list[Principle]:
        return [Principle.from_name(name) for name in self.principles]


class CaseRelationship(BaseModel):
    """
    A directed, typed edge between two cases.

    The type is upper-cased on construction; any type is accepted here,
    safety checks happen where the type is written into Cypher.
    """

    model_config = ConfigDict(populate_by_name=True)

    from_id: str = Field(..., alias="from", description="Source case id")
    to_id: str = Field(..., alias="to", description="Target case id")
    type: str = Field(..., description="Relationship type")

    @field_validator("type")
    @classmethod
    def upper_case_type(cls, v: str) -> str:
        return v.strip().upper()


class QueryAnalysis(BaseModel):
    """
    Structured hints extracted from a free-text legal question.

    Attributes:
        principles: Candidate principle display names.
        keywords: Keywords from the query.
        relationship_type: Relationship type suggested by the model, if any.
            Reported back to the caller; traversal does not depend on it.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    principles: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    relationship_type: Optional[str] = Field(None, alias="relationshipType")

    @field_validator("principles", "keywords", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @classmethod
    def fallback(cls, raw_query: str) -> "QueryAnalysis":
        """Keyword-only hints: every lower-cased whitespace token of the query."""
        return cls(principles=[], keywords=raw_query.lower().split())


class SearchResult(BaseModel):
    """
    Response payload of a precedent search.

    Attributes:
        cases: Property mappings of the matched cases (at most 10).
        related_cases: Property mappings of cases reached over CITES,
            OVERRULES or APPLIES_TO edges. Not deduplicated across matched
            cases.
        analysis: The hints the search was built from.
    """

    model_config = ConfigDict(populate_by_name=True)

    cases: list[dict[str, Any]] = Field(default_factory=list)
    related_cases: list[dict[str, Any]] = Field(default_factory=list, alias="relatedCases")
    analysis: QueryAnalysis = Field(default_factory=QueryAnalysis)

    @property
    def case_ids(self) -> list[str]:
        return [case.get("id") for case in self.cases]

    @property
    def related_case_ids(self) -> list[str]:
        return [case.get("id") for case in self.related_cases]

    def to_response(self) -> dict[str, Any]:
        """Serialize to ``{cases, relatedCases, analysis}``."""
        return self.model_dump(by_alias=True)
