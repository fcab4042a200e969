import logging
from collections.abc import Iterator
from pathlib import Path

from langchain_core.documents import Document
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from domain_models.config import PipelineConfig
from ragbook.exceptions import DocumentLoadError
from ragbook.utils.io import check_file

logger = logging.getLogger(__name__)


class PdfLoader:
    """
    Loads a PDF as one Document per page.

    Page metadata: ``source`` (path), ``page`` (0-based) and ``total_pages``.
    """

    def __init__(self, path: str | Path, config: PipelineConfig | None = None) -> None:
        self.path = Path(path)
        self.config = config or PipelineConfig()

    def lazy_load(self) -> Iterator[Document]:
        """
        Yield page documents one at a time.

        Raises:
            DocumentLoadError: If the file is missing, too large, or not a readable PDF.
        """
        try:
            check_file(self.path, self.config.max_file_size_bytes)
        except (FileNotFoundError, ValueError) as e:
            logger.error(f"Cannot load PDF {self.path}: {e}")
            raise DocumentLoadError(str(e)) from e

        logger.info(f"Loading PDF: {self.path}")
        try:
            reader = PdfReader(self.path)
            if reader.is_encrypted:
                msg = f"PDF is encrypted: {self.path}"
                raise DocumentLoadError(msg)

            num_pages = len(reader.pages)
            for page_number, page in enumerate(reader.pages):
                text = page.extract_text() or ""
                if not text.strip():
                    logger.debug(f"Page {page_number + 1} of {num_pages} has no extractable text.")
                yield Document(
                    page_content=text,
                    metadata={
                        "source": str(self.path),
                        "page": page_number,
                        "total_pages": num_pages,
                    },
                )
        except DocumentLoadError:
            raise
        except PdfReadError as e:
            logger.error(f"Error reading PDF: {e}")
            msg = f"Could not read PDF {self.path}: {e}"
            raise DocumentLoadError(msg) from e

    def load(self) -> list[Document]:
        docs = list(self.lazy_load())
        logger.info(f"Loaded {len(docs)} pages from {self.path}")
        return docs
