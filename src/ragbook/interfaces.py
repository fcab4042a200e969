from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from langchain_core.documents import Document

from domain_models.manifest import Answer


@runtime_checkable
class TextSplitter(Protocol):
    """
    Protocol for text splitting engines.
    """

    def split_text(self, text: str) -> list[str]:
        """Split text into pieces."""
        ...

    def split_documents(self, documents: Sequence[Document]) -> list[Document]:
        """Split documents, carrying metadata onto every piece."""
        ...


@runtime_checkable
class QuestionAnswerer(Protocol):
    """
    Protocol for question answering engines.
    """

    def ask(self, question: str, k: int | None = None) -> Answer:
        """
        Answer a question.

        Args:
            question: Natural-language question.
            k: Optional number of passages to retrieve.

        Returns:
            The answer with its supporting sources.
        """
        ...
