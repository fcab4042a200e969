"""
Shared test utilities.
"""

from typing import Any

from langchain_core.documents import Document


class CharTokenizer:
    """Fake tiktoken Encoding: one character is one token."""

    name = "cl100k_base"

    def encode(self, text: str, **_: Any) -> list[int]:
        return [ord(c) for c in text]

    def decode(self, tokens: list[int]) -> str:
        return "".join(chr(t) for t in tokens)


def make_page(text: str, page: int = 0, source: str = "docs/sample.pdf", total: int = 3) -> Document:
    """Factory for page documents shaped like PdfLoader output."""
    return Document(
        page_content=text,
        metadata={"source": source, "page": page, "total_pages": total},
    )
