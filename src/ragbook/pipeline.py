"""
End-to-end PDF question answering: load, split, embed, index, answer.
"""

import logging
from pathlib import Path

from langchain_core.embeddings import Embeddings
from langchain_core.language_models import BaseChatModel

from domain_models.config import PipelineConfig
from domain_models.manifest import Answer
from ragbook.agents.qa import RetrievalQA
from ragbook.engines.document_splitter import split_documents
from ragbook.engines.embedder import build_embeddings
from ragbook.engines.index import DocumentIndex
from ragbook.interfaces import QuestionAnswerer, TextSplitter
from ragbook.llm import build_chat_model
from ragbook.loaders.pdf import PdfLoader

logger = logging.getLogger(__name__)


def build_index_from_pdf(
    path: str | Path,
    config: PipelineConfig,
    embeddings: Embeddings | None = None,
    splitter: TextSplitter | None = None,
) -> DocumentIndex:
    """
    Load a PDF, split its pages and index the chunks.

    Args:
        path: PDF file to index.
        config: Splitting and embedding settings.
        embeddings: Optional embeddings backend; built from config when omitted.
        splitter: Optional splitter; recursive character splitting when omitted.
    """
    pages = PdfLoader(path, config).load()
    chunks = split_documents(pages, config, splitter)
    index = DocumentIndex(embeddings or build_embeddings(config))
    index.add_documents(chunks)
    logger.info(f"Built index for {path}: {len(pages)} pages, {len(chunks)} chunks.")
    return index


def answer_question(
    index: DocumentIndex,
    question: str,
    config: PipelineConfig,
    llm: BaseChatModel | None = None,
) -> Answer:
    """Answer ``question`` against ``index`` with ``llm`` (or config.chat_model)."""
    llm = llm or build_chat_model(config.chat_model, config)
    qa: QuestionAnswerer = RetrievalQA(index, llm, config)
    return qa.ask(question)
