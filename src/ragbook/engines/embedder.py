import logging
from collections.abc import Iterable, Iterator, Sequence

import numpy as np
from langchain_core.embeddings import Embeddings
from langchain_openai import OpenAIEmbeddings
from pydantic import SecretStr
from sentence_transformers import SentenceTransformer

from domain_models.config import PipelineConfig
from domain_models.constants import OPENAI_EMBEDDING_PREFIX
from ragbook.config import get_openai_api_key, get_openai_base_url
from ragbook.exceptions import ConfigurationError
from ragbook.utils.compat import batched

logger = logging.getLogger(__name__)

MINI_BATCH_SIZE = 8


class EmbeddingService(Embeddings):
    """Local SentenceTransformer embeddings usable wherever langchain expects Embeddings."""

    def __init__(self, config: PipelineConfig) -> None:
        """
        Initialize the embedding service.

        Args:
            config: Processing configuration containing `embedding_model` and `embedding_batch_size`.
        """
        self.config = config
        self.model_name = config.embedding_model
        # Lazy loading: Do not initialize model here.
        self._model: SentenceTransformer | None = None

    @property
    def model(self) -> SentenceTransformer:
        """Lazy loader for the SentenceTransformer model."""
        if self._model is None:
            logger.info(f"Loading embedding model: {self.model_name}")
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed_strings(self, texts: Iterable[str]) -> Iterator[list[float]]:
        """
        Embeds an iterable of strings and yields their vectors.

        Inputs are consumed in batches of ``embedding_batch_size`` so large
        corpora never need to be held in memory at once.
        """
        batch_size = self.config.embedding_batch_size
        processed_count = 0

        for batch in batched(texts, batch_size):
            processed_count += len(batch)
            if processed_count % (batch_size * 10) == 0:
                logger.info(f"Embedded {processed_count} items...")
            yield from self._process_batch(batch)

    def _process_batch(self, batch_texts: Sequence[str]) -> Iterator[list[float]]:
        """Helper to process a single batch."""
        if not batch_texts:
            return

        try:
            for i in range(0, len(batch_texts), MINI_BATCH_SIZE):
                chunk_texts = list(batch_texts[i : i + MINI_BATCH_SIZE])

                chunk_embeddings = self.model.encode(
                    chunk_texts,
                    batch_size=len(chunk_texts),
                    convert_to_numpy=True,
                    show_progress_bar=False,
                )

                if isinstance(chunk_embeddings, np.ndarray):
                    for j in range(chunk_embeddings.shape[0]):
                        yield [float(x) for x in chunk_embeddings[j]]
                else:
                    for emb in chunk_embeddings:
                        yield [float(x) for x in emb]

        except Exception:
            logger.exception("Failed to encode batch.")
            raise

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return list(self.embed_strings(texts))

    def embed_query(self, text: str) -> list[float]:
        return next(self._process_batch([text]))


def build_embeddings(config: PipelineConfig) -> Embeddings:
    """
    Choose an embeddings backend for ``config.embedding_model``.

    OpenAI models (``text-embedding-*``) go through the OpenAI API, everything
    else is loaded locally with sentence-transformers.

    Raises:
        ConfigurationError: If an OpenAI model is requested without an API key.
    """
    if config.embedding_model.startswith(OPENAI_EMBEDDING_PREFIX):
        api_key = get_openai_api_key()
        if not api_key:
            msg = f"OPENAI_API_KEY is required for embedding model '{config.embedding_model}'."
            raise ConfigurationError(msg)
        return OpenAIEmbeddings(
            model=config.embedding_model,
            api_key=SecretStr(api_key),
            base_url=get_openai_base_url(),
            chunk_size=config.embedding_batch_size,
        )
    return EmbeddingService(config)
