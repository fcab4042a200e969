import logging
from collections.abc import Sequence
from pathlib import Path

from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings
from langchain_core.vectorstores import InMemoryVectorStore, VectorStoreRetriever

from ragbook.exceptions import RetrievalError

logger = logging.getLogger(__name__)


class DocumentIndex:
    """
    Similarity-searchable collection of document chunks.

    Thin wrapper over langchain's InMemoryVectorStore adding validation,
    logging and JSON persistence.
    """

    def __init__(self, embeddings: Embeddings, store: InMemoryVectorStore | None = None) -> None:
        self.embeddings = embeddings
        self.store = store or InMemoryVectorStore(embedding=embeddings)
        self._count = len(self.store.store)

    def __len__(self) -> int:
        return self._count

    def add_documents(self, documents: Sequence[Document]) -> list[str]:
        """Embed and store documents. Returns the generated ids."""
        if not documents:
            logger.debug("No documents to add to index.")
            return []
        ids = self.store.add_documents(list(documents))
        self._count = len(self.store.store)
        logger.info(f"Indexed {len(ids)} chunks (total {self._count}).")
        return ids

    def similarity_search(self, query: str, k: int = 4) -> list[tuple[Document, float]]:
        """
        Return up to ``k`` chunks most similar to ``query`` with their scores.

        Raises:
            ValueError: If the query is blank or k < 1.
            RetrievalError: If the underlying search fails.
        """
        if not query or not query.strip():
            msg = "Query cannot be empty."
            raise ValueError(msg)
        if k < 1:
            msg = f"k must be at least 1 (got {k})."
            raise ValueError(msg)
        if self._count == 0:
            logger.warning("Similarity search on an empty index.")
            return []

        try:
            return self.store.similarity_search_with_score(query, k=k)
        except Exception as e:
            logger.exception("Similarity search failed.")
            msg = f"Similarity search failed: {e}"
            raise RetrievalError(msg) from e

    async def asimilarity_search(self, query: str, k: int = 4) -> list[tuple[Document, float]]:
        """Async version of :meth:`similarity_search`."""
        if not query or not query.strip():
            msg = "Query cannot be empty."
            raise ValueError(msg)
        if k < 1:
            msg = f"k must be at least 1 (got {k})."
            raise ValueError(msg)
        if self._count == 0:
            logger.warning("Similarity search on an empty index.")
            return []

        try:
            return await self.store.asimilarity_search_with_score(query, k=k)
        except Exception as e:
            logger.exception("Similarity search failed.")
            msg = f"Similarity search failed: {e}"
            raise RetrievalError(msg) from e

    def as_retriever(self, k: int = 4) -> VectorStoreRetriever:
        return self.store.as_retriever(search_kwargs={"k": k})

    def save(self, path: str | Path) -> Path:
        """Persist the index as JSON (embeddings included)."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        self.store.dump(str(target))
        logger.info(f"Saved index with {self._count} chunks to {target}")
        return target

    @classmethod
    def load(cls, path: str | Path, embeddings: Embeddings) -> "DocumentIndex":
        """
        Load an index written by :meth:`save`.

        ``embeddings`` must be the model the index was built with, since only
        queries are embedded after loading.
        """
        source = Path(path)
        if not source.is_file():
            msg = f"Index file not found: {source}"
            raise FileNotFoundError(msg)
        store = InMemoryVectorStore.load(str(source), embeddings)
        index = cls(embeddings, store=store)
        logger.info(f"Loaded index with {len(index)} chunks from {source}")
        return index
