from ragbook.engines.document_splitter import split_documents
from ragbook.engines.embedder import EmbeddingService, build_embeddings
from ragbook.engines.index import DocumentIndex
from ragbook.engines.token_splitter import TokenTextSplitter

__all__ = [
    "DocumentIndex",
    "EmbeddingService",
    "TokenTextSplitter",
    "build_embeddings",
    "split_documents",
]
