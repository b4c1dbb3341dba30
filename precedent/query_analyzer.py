"""
Query analysis for precedent search.

Turns a free-text legal question into ``QueryAnalysis`` hints
(candidate principles and keywords) by asking a text-analysis backend
for a strict JSON payload.

Architecture:
    The analyzer depends on a ``TextAnalysisBackend`` protocol, so the
    chat-model backend used in production can be swapped for the offline
    ``KeywordBackend`` (demos) or any fake (tests).

The analyzer never raises: a failed backend call or an unparseable
response degrades to keyword-only hints built from the raw query.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterable, Optional, Protocol, runtime_checkable

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import ValidationError as PydanticValidationError

from config.settings import Settings, get_settings
from precedent.exceptions import AnalysisError
from precedent.models import QueryAnalysis

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a legal research assistant. Analyze queries and extract legal "
    "concepts, principles, and relationships. Always respond with valid JSON "
    "only, no markdown formatting."
)

ANALYSIS_PROMPT_TEMPLATE = """Analyze this legal research query and extract key information.

Query: "{query}"

Respond ONLY with valid JSON in this exact format (no markdown, no code blocks, just raw JSON):
{{
  "principles": ["list", "of", "legal", "principles"],
  "keywords": ["important", "keywords"],
  "relationshipType": null
}}

Only include principles if they are clearly legal concepts mentioned in the query."""

CODE_FENCE = re.compile(r"```(?:json)?\n?|\n?```")
QUERY_LINE = re.compile(r'^Query: "(.*)"\n\nRespond ONLY', re.MULTILINE | re.DOTALL)


@runtime_checkable
class TextAnalysisBackend(Protocol):
    """
    Protocol for text-analysis implementations.

    Allows swapping between a hosted chat model and offline analysis.
    """

    def analyze(
        self, system_prompt: str, prompt: str, *, timeout: Optional[float] = None
    ) -> str:
        """
        Answer ``prompt`` under ``system_prompt``.

        Returns:
            The raw response text.
        """
        ...


class ChatModelBackend:
    """
    Backend that calls a LangChain chat model.

    By default an OpenAI-compatible ``ChatOpenAI`` client is built from
    settings on first use; set ``OPENAI_BASE_URL`` to target another
    compatible host.
    """

    def __init__(
        self,
        llm: Optional[BaseChatModel] = None,
        *,
        settings: Optional[Settings] = None,
    ) -> None:
        self._llm = llm
        self._settings = settings or get_settings()

    @property
    def llm(self) -> BaseChatModel:
        """Lazy initialization of the chat model."""
        if self._llm is None:
            from langchain_openai import ChatOpenAI

            self._llm = ChatOpenAI(
                model=self._settings.MODEL_NAME,
                api_key=self._settings.OPENAI_API_KEY,
                base_url=self._settings.OPENAI_BASE_URL,
                temperature=self._settings.LLM_TEMPERATURE,
                max_tokens=self._settings.LLM_MAX_TOKENS,
                timeout=self._settings.LLM_TIMEOUT,
            )
        return self._llm

    def analyze(
        self, system_prompt: str, prompt: str, *, timeout: Optional[float] = None
    ) -> str:
        messages = [SystemMessage(content=system_prompt), HumanMessage(content=prompt)]
        if timeout is not None:
            response = self.llm.invoke(messages, timeout=timeout)
        else:
            response = self.llm.invoke(messages)

        content = response.content
        if isinstance(content, list):
            content = "".join(
                item.get("text", "") if isinstance(item, dict) else str(item)
                for item in content
            )
        return str(content or "")


class KeywordBackend:
    """
    Offline backend that recognizes known principle names.

    Matches each known principle case-insensitively as a whole phrase
    and answers with the same JSON contract as a chat model.
    Replace with ChatModelBackend for production use.
    """

    DEFAULT_PRINCIPLES: tuple[str, ...] = (
        "Privacy",
        "Due Process",
        "Bodily Autonomy",
        "Federalism",
        "Stare Decisis",
        "Constitutional Interpretation",
        "Data Privacy",
        "Healthcare Compliance",
        "HIPAA",
        "Damages",
    )

    STOPWORDS = frozenset({
        "a", "an", "and", "are", "about", "by", "cases", "do", "does", "find",
        "for", "in", "is", "me", "of", "on", "or", "show", "that", "the",
        "to", "what", "which", "with",
    })

    def __init__(self, principles: Optional[Iterable[str]] = None) -> None:
        names = tuple(principles) if principles is not None else self.DEFAULT_PRINCIPLES
        self.patterns: dict[str, re.Pattern] = {
            name: re.compile(
                r"\b" + r"\s+".join(re.escape(part) for part in name.split()) + r"\b",
                re.IGNORECASE,
            )
            for name in names
        }

    def analyze(
        self, system_prompt: str, prompt: str, *, timeout: Optional[float] = None
    ) -> str:
        match = QUERY_LINE.search(prompt)
        query = match.group(1) if match else prompt

        principles = [name for name, pattern in self.patterns.items() if pattern.search(query)]
        keywords = [
            token
            for token in re.findall(r"[a-z0-9]+", query.lower())
            if token not in self.STOPWORDS
        ]
        return json.dumps({
            "principles": principles,
            "keywords": keywords,
            "relationshipType": None,
        })


def strip_code_fences(text: str) -> str:
    """Remove markdown code-fence markers around a JSON payload."""
    return CODE_FENCE.sub("", text).strip()


def parse_analysis(text: str) -> QueryAnalysis:
    """
    Parse a backend response into QueryAnalysis.

    Raises:
        AnalysisError: If the response is not a JSON object of the
            expected shape.
    """
    cleaned = strip_code_fences(text)
    try:
        payload: Any = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise AnalysisError(f"Response is not valid JSON: {e}", response_sample=cleaned) from e

    if not isinstance(payload, dict):
        raise AnalysisError(
            f"Expected a JSON object, got {type(payload).__name__}",
            response_sample=cleaned,
        )
    try:
        return QueryAnalysis.model_validate(payload)
    except PydanticValidationError as e:
        raise AnalysisError(f"Unexpected analysis shape: {e}", response_sample=cleaned) from e


class QueryAnalyzer:
    """
    Extracts principle and keyword hints from a legal question.

    Attributes:
        backend: The text-analysis backend that is asked for JSON.
        timeout: Default timeout for the backend call, in seconds.
    """

    def __init__(
        self,
        backend: TextAnalysisBackend,
        *,
        timeout: Optional[float] = None,
    ) -> None:
        self.backend = backend
        self.timeout = timeout

    def analyze(self, raw_query: str, *, timeout: Optional[float] = None) -> QueryAnalysis:
        """
        Analyze ``raw_query`` into structured hints.

        Args:
            raw_query: The user's free-text question.
            timeout: Overrides the analyzer's default backend timeout.

        Returns:
            Hints from the backend, or keyword-only fallback hints when the
            backend fails or answers with something other than the JSON
            contract. Never raises.
        """
        prompt = ANALYSIS_PROMPT_TEMPLATE.format(query=raw_query)
        effective_timeout = timeout if timeout is not None else self.timeout

        try:
            response = self.backend.analyze(SYSTEM_PROMPT, prompt, timeout=effective_timeout)
            analysis = parse_analysis(response)
        except AnalysisError as e:
            logger.warning(f"Failed to parse query analysis, using keywords: {e}")
            analysis = QueryAnalysis.fallback(raw_query)
        except Exception as e:
            logger.warning(f"Query analysis call failed, using keywords: {e}")
            analysis = QueryAnalysis.fallback(raw_query)

        logger.info(
            f"Query analysis: {len(analysis.principles)} principles, "
            f"{len(analysis.keywords)} keywords"
        )
        return analysis


def create_default_analyzer(settings: Optional[Settings] = None) -> QueryAnalyzer:
    """
    Build the analyzer used when none is injected.

    Uses the chat-model backend when an API key is configured and the
    offline keyword backend otherwise.
    """
    settings = settings or get_settings()
    if settings.is_production:
        backend: TextAnalysisBackend = ChatModelBackend(settings=settings)
    else:
        logger.info("No API key configured; using offline keyword analysis")
        backend = KeywordBackend()
    return QueryAnalyzer(backend, timeout=settings.LLM_TIMEOUT)
