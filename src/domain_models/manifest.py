import logging
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from domain_models.types import Metadata

# Configure logger
logger = logging.getLogger(__name__)


class Chunk(BaseModel):
    """Represents a token-bounded segment of text."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    index: int = Field(..., ge=0, description="Sequential ID of the chunk.")
    text: str = Field(..., min_length=1, description="The decoded text content of the chunk.")
    start_token: int = Field(
        ..., ge=0, description="Position of the first token in the encoded source."
    )
    end_token: int = Field(
        ..., ge=0, description="Position one past the last token in the encoded source."
    )
    token_count: int = Field(..., ge=0, description="Number of tokens in the chunk.")
    metadata: Metadata = Field(
        default_factory=dict, description="Optional extra info about the chunk."
    )

    @model_validator(mode="after")
    def check_token_range(self) -> "Chunk":
        """
        Validate that text is present and the token range matches the count.
        """
        if not self.text.strip():
            msg = "Chunk text cannot be empty or whitespace only."
            logger.error(msg)
            raise ValueError(msg)

        if self.start_token > self.end_token:
            msg = (
                f"Invalid token range: start ({self.start_token}) cannot be greater than "
                f"end ({self.end_token})."
            )
            logger.error(msg)
            raise ValueError(msg)

        if self.token_count != self.end_token - self.start_token:
            msg = (
                f"token_count ({self.token_count}) does not match token range "
                f"[{self.start_token}, {self.end_token})."
            )
            logger.error(msg)
            raise ValueError(msg)

        return self


class SourceReference(BaseModel):
    """A retrieved passage that grounded an answer."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    source: str = Field(..., description="Path or identifier of the source document.")
    page: int | None = Field(default=None, ge=1, description="1-based page number, if known.")
    snippet: str = Field(..., description="Leading text of the retrieved passage.")
    score: float | None = Field(default=None, description="Similarity score of the passage.")


class Answer(BaseModel):
    """
    Answer synthesised from retrieved context.
    """

    model_config = ConfigDict(extra="forbid")

    question: str = Field(..., min_length=1, description="The question that was asked.")
    answer: str = Field(..., description="The model's answer.")
    sources: list[SourceReference] = Field(
        default_factory=list, description="Passages the answer was grounded on."
    )
    model_name: str = Field(..., description="The name of the model used for answering.")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Time of answering."
    )

    @property
    def pages(self) -> list[int]:
        """Distinct cited page numbers in retrieval order."""
        seen: list[int] = []
        for ref in self.sources:
            if ref.page is not None and ref.page not in seen:
                seen.append(ref.page)
        return seen
