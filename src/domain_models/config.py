import os
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from domain_models.constants import (
    ALLOWED_CHAT_MODELS,
    ALLOWED_EMBEDDING_MODELS,
    ALLOWED_TOKENIZER_MODELS,
    DEFAULT_CHAT_MODEL,
    DEFAULT_EMBEDDING,
    DEFAULT_TOKENIZER,
    MAX_FILE_SIZE_BYTES,
)


def _safe_getenv(key: str, default: str) -> str:
    """Safely get environment variable with fallback."""
    val = os.getenv(key)
    if val is None or not val.strip():
        return default
    return val


class PipelineConfig(BaseModel):
    """
    Configuration for splitting, embedding, retrieval and model calls.

    Model names default from environment variables and are checked against
    allow-lists so a typo fails at construction rather than mid-pipeline.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    # Recursive character splitting
    chunk_size: int = Field(default=1000, ge=1, description="Maximum characters per chunk.")
    chunk_overlap: int = Field(
        default=200, ge=0, description="Number of overlapping characters between chunks."
    )

    # Token splitting
    token_chunk_size: int = Field(default=500, ge=1, description="Maximum tokens per chunk.")
    token_overlap: int = Field(
        default=0, ge=0, description="Number of overlapping tokens between chunks."
    )
    tokenizer_model: str = Field(
        default_factory=lambda: _safe_getenv("TOKENIZER_MODEL", DEFAULT_TOKENIZER),
        description="Tokenizer model/encoding name to use.",
    )

    # Embedding Configuration
    embedding_model: str = Field(
        default_factory=lambda: _safe_getenv("EMBEDDING_MODEL", DEFAULT_EMBEDDING),
        description="SentenceTransformer or OpenAI embedding model name.",
    )
    embedding_batch_size: int = Field(
        default=32, ge=1, description="Batch size for embedding generation."
    )

    # LLM Configuration
    chat_model: str = Field(
        default_factory=lambda: _safe_getenv("CHAT_MODEL", DEFAULT_CHAT_MODEL),
        description="Model used to answer questions.",
    )
    fixing_model: str = Field(
        default_factory=lambda: _safe_getenv("FIXING_MODEL", DEFAULT_CHAT_MODEL),
        description="Auxiliary model used to repair malformed structured output.",
    )
    llm_temperature: float = Field(
        default=0.0, ge=0.0, le=1.0, description="Sampling temperature for LLM."
    )
    max_retries: int = Field(
        default=3, ge=1, description="Maximum number of attempts for a single LLM call."
    )
    retry_min_wait: int = Field(
        default=2, ge=0, description="Minimum wait time between retries (seconds)."
    )
    retry_max_wait: int = Field(
        default=10, ge=0, description="Maximum wait time between retries (seconds)."
    )
    max_fix_attempts: int = Field(
        default=1, ge=0, description="Number of repair rounds for malformed structured output."
    )

    # Retrieval Configuration
    retrieval_k: int = Field(default=4, ge=1, description="Number of chunks to retrieve.")

    # IO
    max_file_size_bytes: int = Field(
        default=MAX_FILE_SIZE_BYTES, ge=1, description="Maximum size of an input file."
    )

    @field_validator("embedding_model", mode="after")
    @classmethod
    def validate_embedding_model(cls, v: str) -> str:
        """Validate embedding model name against whitelist."""
        if not v or not v.strip():
            msg = "Embedding model name cannot be empty."
            raise ValueError(msg)
        if v not in ALLOWED_EMBEDDING_MODELS:
            msg = (
                f"Embedding model '{v}' is not in the allowed list. "
                f"Allowed: {sorted(ALLOWED_EMBEDDING_MODELS)}"
            )
            raise ValueError(msg)
        return v

    @field_validator("chat_model", "fixing_model", mode="after")
    @classmethod
    def validate_llm_model(cls, v: str) -> str:
        """Validate LLM model name against whitelist."""
        if v not in ALLOWED_CHAT_MODELS:
            msg = f"LLM model '{v}' is not allowed. Allowed: {sorted(ALLOWED_CHAT_MODELS)}"
            raise ValueError(msg)
        return v

    @field_validator("tokenizer_model", mode="after")
    @classmethod
    def validate_tokenizer_model(cls, v: str) -> str:
        """Validate tokenizer model against whitelist."""
        if not v or not v.strip():
            msg = "Tokenizer model name cannot be empty."
            raise ValueError(msg)
        if v not in ALLOWED_TOKENIZER_MODELS:
            msg = (
                f"Tokenizer model '{v}' is not allowed. Allowed: {sorted(ALLOWED_TOKENIZER_MODELS)}"
            )
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def validate_overlaps(self) -> Self:
        """Overlaps must be strictly smaller than the window they overlap."""
        if self.chunk_overlap >= self.chunk_size:
            msg = (
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})."
            )
            raise ValueError(msg)
        if self.token_overlap >= self.token_chunk_size:
            msg = (
                f"token_overlap ({self.token_overlap}) must be smaller than "
                f"token_chunk_size ({self.token_chunk_size})."
            )
            raise ValueError(msg)
        if self.retry_min_wait > self.retry_max_wait:
            msg = "retry_min_wait cannot be greater than retry_max_wait."
            raise ValueError(msg)
        return self

    @classmethod
    def default(cls) -> Self:
        """
        Returns the default configuration using Pydantic defaults.
        """
        return cls()

    @classmethod
    def small_context(cls) -> Self:
        """
        Returns a configuration for small context windows (smaller chunks, fewer hits).
        """
        return cls(chunk_size=500, chunk_overlap=50, token_chunk_size=200, token_overlap=20, retrieval_k=3)
