"""
Configuration management for Precedent GraphRAG.

This module uses Pydantic Settings for type-safe configuration
with automatic environment variable loading and validation.

Environment variables can be set in:
- Shell environment
- .env file in project root

Example:
    >>> from config.settings import settings
    >>> print(settings.NEO4J_URI)
    bolt://localhost:7687
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

NEO4J_SCHEMES = (
    "bolt://",
    "bolt+s://",
    "bolt+ssc://",
    "neo4j://",
    "neo4j+s://",
    "neo4j+ssc://",
)


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    The prefix is not used, so NEO4J_URI maps directly to the NEO4J_URI
    env var.

    Attributes:
        NEO4J_URI: Neo4j connection URI.
        NEO4J_USER: Database username.
        NEO4J_PASSWORD: Database password.
        NEO4J_DATABASE: Target database name (server default when unset).
        NEO4J_QUERY_TIMEOUT: Default per-query timeout in seconds.
        OPENAI_API_KEY: API key for the query-analysis model.
        OPENAI_BASE_URL: Optional OpenAI-compatible endpoint (e.g. Groq).
        MODEL_NAME: Chat model used for query analysis.
        LLM_TEMPERATURE: Sampling temperature for query analysis.
        LLM_MAX_TOKENS: Response token cap for query analysis.
        LLM_TIMEOUT: Default analysis request timeout in seconds.
        LOG_LEVEL: Logging verbosity level.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Neo4j Configuration
    NEO4J_URI: str = Field(
        default="bolt://localhost:7687",
        description="Neo4j connection URI"
    )
    NEO4J_USER: str = Field(
        default="neo4j",
        description="Neo4j username"
    )
    NEO4J_PASSWORD: str = Field(
        default="password",
        description="Neo4j password"
    )
    NEO4J_DATABASE: Optional[str] = Field(
        default=None,
        description="Neo4j database name"
    )
    NEO4J_QUERY_TIMEOUT: Optional[float] = Field(
        default=None,
        gt=0,
        description="Default query timeout in seconds"
    )

    # LLM Configuration
    OPENAI_API_KEY: str = Field(
        default="sk-placeholder",
        description="API key for the analysis model"
    )
    OPENAI_BASE_URL: Optional[str] = Field(
        default=None,
        description="OpenAI-compatible base URL"
    )
    MODEL_NAME: str = Field(
        default="gpt-4o-mini",
        description="LLM model name"
    )
    LLM_TEMPERATURE: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Sampling temperature"
    )
    LLM_MAX_TOKENS: int = Field(
        default=500,
        gt=0,
        description="Maximum tokens in the analysis response"
    )
    LLM_TIMEOUT: Optional[float] = Field(
        default=30.0,
        gt=0,
        description="Analysis request timeout in seconds"
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity"
    )

    @field_validator("NEO4J_URI")
    @classmethod
    def validate_neo4j_uri(cls, v: str) -> str:
        """Ensure Neo4j URI has valid scheme."""
        if not v.startswith(NEO4J_SCHEMES):
            raise ValueError(
                f"NEO4J_URI must start with one of {', '.join(NEO4J_SCHEMES)}"
            )
        return v

    @property
    def is_production(self) -> bool:
        """Check if a real analysis model is configured."""
        return self.OPENAI_API_KEY != "sk-placeholder"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Singleton Settings instance.
    """
    return Settings()


# Global settings instance
settings = get_settings()
