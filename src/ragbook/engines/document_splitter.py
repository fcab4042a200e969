import logging
from collections.abc import Iterable

from langchain_core.documents import Document
from langchain_text_splitters import RecursiveCharacterTextSplitter

from domain_models.config import PipelineConfig
from ragbook.interfaces import TextSplitter

logger = logging.getLogger(__name__)


def build_recursive_splitter(config: PipelineConfig) -> RecursiveCharacterTextSplitter:
    """Character-length recursive splitter that records each chunk's start offset."""
    return RecursiveCharacterTextSplitter(
        chunk_size=config.chunk_size,
        chunk_overlap=config.chunk_overlap,
        add_start_index=True,
    )


def token_length_splitter(config: PipelineConfig) -> RecursiveCharacterTextSplitter:
    """
    Recursive splitter that measures chunk length in tokens instead of characters.

    chunk_size and chunk_overlap are read from token_chunk_size and token_overlap.
    """
    return RecursiveCharacterTextSplitter.from_tiktoken_encoder(
        encoding_name=config.tokenizer_model,
        chunk_size=config.token_chunk_size,
        chunk_overlap=config.token_overlap,
        add_start_index=True,
    )


def split_documents(
    documents: Iterable[Document],
    config: PipelineConfig,
    splitter: TextSplitter | None = None,
) -> list[Document]:
    """
    Split page documents into retrieval-sized chunks.

    Metadata is preserved; ``chunk_index`` numbers chunks across the whole run.
    Any TextSplitter may stand in for the recursive character splitter, e.g.
    a TokenTextSplitter for token-bounded chunks.
    """
    splitter = splitter or build_recursive_splitter(config)
    docs = [d for d in documents if d.page_content.strip()]
    if not docs:
        logger.warning("No non-empty documents to split.")
        return []

    chunks: list[Document] = []
    for split in splitter.split_documents(docs):
        if not split.page_content.strip():
            continue
        split.metadata["chunk_index"] = len(chunks)
        chunks.append(split)

    logger.info(f"Split {len(docs)} documents into {len(chunks)} chunks.")
    return chunks
