"""
Pytest fixtures shared across all test modules.

``InMemoryGraphStore`` stands in for Neo4j. It understands exactly the
statements the package sends (constraints, case ingestion, case
relationships, the search traversal, the connectivity probe and graph
stats) and applies MERGE semantics to them, so behavioural tests can
run without a database.
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from precedent.exceptions import QueryExecutionError

DATA_DIR = Path(__file__).resolve().parent.parent / "data"

RELATIONSHIP_MERGE = re.compile(r"MERGE \(source\)-\[r:(\w+)\]->\(target\)")
TRAVERSAL_TYPES = re.compile(r"OPTIONAL MATCH \(c\)-\[r:([A-Z_|]+)\]->\(related:Case\)")


class InMemoryGraphStore:
    """Dictionary-backed replacement for GraphStore."""

    uri = "memory://"

    def __init__(self) -> None:
        self.constraints: set = set()
        self.cases: Dict[str, Dict[str, Any]] = {}
        self.principles: Dict[str, Dict[str, Any]] = {}
        self.involves: List[tuple] = []
        self.edges: Dict[tuple, Dict[str, Any]] = {}
        self.executed: List[Dict[str, Any]] = []

    def execute(
        self,
        query: str,
        parameters: Optional[Dict[str, Any]] = None,
        *,
        timeout: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        params = dict(parameters or {})
        self.executed.append({"query": query, "parameters": params, "timeout": timeout})
        text = query.strip()

        if text.startswith("CREATE CONSTRAINT"):
            self.constraints.add(text.split()[2])
            return []
        if text.startswith("MERGE (c:Case {id: $id})"):
            return self._ingest(params)
        match = RELATIONSHIP_MERGE.search(text)
        if match:
            return self._relate(match.group(1), params["from_id"], params["to_id"])
        if text.startswith("MATCH (c:Case)\nWITH count(c) AS cases"):
            return [{"cases": len(self.cases), "principles": len(self.principles)}]
        if text.startswith("MATCH (:Case)-[r]->(:Case)"):
            links: Dict[str, int] = {}
            for (_, rel_type, _) in self.edges:
                links[rel_type] = links.get(rel_type, 0) + 1
            return [{"type": rel_type, "links": links[rel_type]} for rel_type in sorted(links)]
        if text.startswith("MATCH (c:Case)"):
            return self._traverse(text, params)
        if text == 'RETURN "Connected!" AS message':
            return [{"message": "Connected!"}]
        raise QueryExecutionError("Unsupported query in InMemoryGraphStore", query=text)

    def _ingest(self, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        case_id = params["id"]
        node = self.cases.setdefault(case_id, {"id": case_id})
        for key in ("name", "year", "court", "summary", "fullText"):
            node[key] = params[key]
        for principle in params["principles"]:
            self.principles.setdefault(principle["id"], {"id": principle["id"]})
            self.principles[principle["id"]]["name"] = principle["name"]
            link = (case_id, principle["id"])
            if link not in self.involves:
                self.involves.append(link)
        return []

    def _relate(self, rel_type: str, from_id: str, to_id: str) -> List[Dict[str, Any]]:
        if from_id not in self.cases or to_id not in self.cases:
            return [{"touched": 0}]
        key = (from_id, rel_type, to_id)
        if key not in self.edges:
            self.edges[key] = {"weight": 1.0}
        return [{"touched": 1}]

    def _traverse(self, text: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        types = TRAVERSAL_TYPES.search(text).group(1).split("|")
        candidates = list(self.cases)
        if "$principles" in text:
            wanted = set(params["principles"])
            candidates = [
                case_id for case_id in candidates
                if any(
                    link[0] == case_id and self.principles[link[1]]["name"] in wanted
                    for link in self.involves
                )
            ]

        rows = []
        for case_id in candidates[: params["limit"]]:
            related_ids: List[str] = []
            for (source, rel_type, target) in self.edges:
                if source == case_id and rel_type in types and target not in related_ids:
                    related_ids.append(target)
            rows.append({
                "c": self.node(case_id),
                "relatedCases": [self.node(target) for target in related_ids],
            })
        return rows

    def node(self, case_id: str) -> Dict[str, Any]:
        return {
            "element_id": f"case:{case_id}",
            "labels": ["Case"],
            "properties": dict(self.cases[case_id]),
        }

    def edge_count(self, from_id: str, to_id: str, rel_type: str) -> int:
        return sum(1 for key in self.edges if key == (from_id, rel_type, to_id))


class StaticBackend:
    """Text-analysis backend that always answers with the same text."""

    def __init__(self, response: str = "{}", error: Optional[Exception] = None) -> None:
        self.response = response
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def analyze(self, system_prompt: str, prompt: str, *, timeout: Optional[float] = None) -> str:
        self.calls.append({"system_prompt": system_prompt, "prompt": prompt, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def memory_store() -> InMemoryGraphStore:
    """Empty in-memory graph."""
    return InMemoryGraphStore()


@pytest.fixture
def sample_dataset() -> Dict[str, Any]:
    """The sample cases and relationships shipped in data/."""
    return json.loads((DATA_DIR / "sample_cases.json").read_text(encoding="utf-8"))


@pytest.fixture
def dobbs_case() -> Dict[str, Any]:
    return {
        "id": "dobbs_v_jackson_2022",
        "name": "Dobbs v. Jackson Women's Health Organization",
        "year": 2022,
        "court": "Supreme Court",
        "summary": "Overturned Roe v. Wade.",
        "principles": ["Federalism", "Stare Decisis", "Constitutional Interpretation"],
    }


@pytest.fixture
def roe_case() -> Dict[str, Any]:
    return {
        "id": "roe_v_wade_1973",
        "name": "Roe v. Wade",
        "year": 1973,
        "court": "Supreme Court",
        "summary": "Right to privacy covers abortion.",
        "principles": ["Privacy", "Due Process", "Bodily Autonomy"],
    }


@pytest.fixture
def static_backend():
    """Factory for StaticBackend instances."""
    def _make(response: str = "{}", error: Optional[Exception] = None) -> StaticBackend:
        return StaticBackend(response, error)
    return _make


@pytest.fixture
def hints_analyzer(static_backend):
    """Factory for a QueryAnalyzer whose backend returns fixed hints."""
    from precedent.query_analyzer import QueryAnalyzer

    def _make(principles=None, keywords=None) -> QueryAnalyzer:
        payload = {
            "principles": principles or [],
            "keywords": keywords or [],
            "relationshipType": None,
        }
        return QueryAnalyzer(static_backend(json.dumps(payload)))
    return _make
