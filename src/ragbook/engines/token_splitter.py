import logging
from collections.abc import Iterable, Iterator
from functools import lru_cache

import tiktoken
from langchain_core.documents import Document

from domain_models.config import PipelineConfig
from domain_models.constants import ALLOWED_TOKENIZER_MODELS
from domain_models.manifest import Chunk
from domain_models.types import Metadata, TokenIds

# Configure logger
logger = logging.getLogger(__name__)


@lru_cache(maxsize=4)
def get_cached_tokenizer(model_name: str) -> tiktoken.Encoding:
    """
    Get a cached tokenizer instance.

    Args:
        model_name: The name of the encoding/model to load.

    Returns:
        The tiktoken Encoding object.

    Raises:
        ValueError: If the model name is not allowed or invalid.
    """
    if model_name not in ALLOWED_TOKENIZER_MODELS:
        msg = (
            f"Model name '{model_name}' is not in the allowed list. "
            f"Allowed models: {sorted(ALLOWED_TOKENIZER_MODELS)}"
        )
        logger.error(msg)
        raise ValueError(msg)

    try:
        try:
            return tiktoken.encoding_for_model(model_name)
        except KeyError:
            return tiktoken.get_encoding(model_name)
    except Exception as e:
        logger.exception(f"Failed to load tokenizer for '{model_name}'")
        msg = f"Could not load tokenizer for '{model_name}'. Check internet connection or model name validity."
        raise ValueError(msg) from e


def _token_windows(n_tokens: int, chunk_size: int, overlap: int) -> Iterator[tuple[int, int]]:
    """
    Yield [start, end) windows of at most ``chunk_size`` tokens.

    Consecutive windows share ``overlap`` tokens. The last window ends at ``n_tokens``.
    """
    step = chunk_size - overlap
    start = 0
    while start < n_tokens:
        end = min(start + chunk_size, n_tokens)
        yield start, end
        if end == n_tokens:
            break
        start += step


class TokenTextSplitter:
    """
    Splits text into windows bounded by a token count.

    Used to budget how much text fits into a model's context window.
    """

    def __init__(self, config: PipelineConfig | None = None) -> None:
        """
        Args:
            config: Supplies tokenizer_model, token_chunk_size and token_overlap.
        """
        self.config = config or PipelineConfig()
        self.tokenizer = get_cached_tokenizer(self.config.tokenizer_model)

    def count_tokens(self, text: str) -> int:
        """Count tokens in text."""
        if not text:
            return 0
        return len(self.tokenizer.encode(text))

    def _resolve(self, chunk_size: int | None, overlap: int | None) -> tuple[int, int]:
        size = self.config.token_chunk_size if chunk_size is None else chunk_size
        lap = self.config.token_overlap if overlap is None else overlap
        if size < 1:
            msg = f"chunk_size must be at least 1 (got {size})."
            raise ValueError(msg)
        if lap < 0 or lap >= size:
            msg = f"overlap must satisfy 0 <= overlap < chunk_size (got overlap={lap}, chunk_size={size})."
            raise ValueError(msg)
        return size, lap

    def create_chunks(
        self,
        text: str,
        metadata: Metadata | None = None,
        chunk_size: int | None = None,
        overlap: int | None = None,
    ) -> Iterator[Chunk]:
        """
        Split text into Chunk objects (streaming).

        Windows whose decoded text is only whitespace are skipped, but chunk
        indices stay sequential over the emitted chunks.

        Yields:
            Chunk objects carrying token offsets and counts.
        """
        size, lap = self._resolve(chunk_size, overlap)
        if not text:
            logger.warning("Empty input text provided to create_chunks. Yielding nothing.")
            return

        tokens: TokenIds = self.tokenizer.encode(text)
        logger.debug(
            f"Splitting text of length {len(text)} ({len(tokens)} tokens) "
            f"with chunk_size={size}, overlap={lap}"
        )

        index = 0
        for start, end in _token_windows(len(tokens), size, lap):
            piece = self.tokenizer.decode(tokens[start:end])
            if not piece.strip():
                continue
            yield Chunk(
                index=index,
                text=piece,
                start_token=start,
                end_token=end,
                token_count=end - start,
                metadata=dict(metadata or {}),
            )
            index += 1

    def split_text(
        self, text: str, chunk_size: int | None = None, overlap: int | None = None
    ) -> list[str]:
        """
        Split text into strings of at most ``chunk_size`` tokens.

        Args:
            text: Raw input text.
            chunk_size: Optional override of config.token_chunk_size.
            overlap: Optional override of config.token_overlap.
        """
        size, lap = self._resolve(chunk_size, overlap)
        if not text:
            return []
        tokens: TokenIds = self.tokenizer.encode(text)
        return [
            self.tokenizer.decode(tokens[start:end])
            for start, end in _token_windows(len(tokens), size, lap)
        ]

    def split_documents(self, documents: Iterable[Document]) -> list[Document]:
        """Split each document, copying its metadata onto every piece."""
        out: list[Document] = []
        for doc in documents:
            for chunk in self.create_chunks(doc.page_content, metadata=doc.metadata):
                chunk.metadata["chunk_index"] = len(out)
                chunk.metadata["token_count"] = chunk.token_count
                out.append(Document(page_content=chunk.text, metadata=chunk.metadata))
        return out
