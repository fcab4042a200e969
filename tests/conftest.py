from collections.abc import Iterator
from unittest.mock import patch

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding

from tests.helpers import CharTokenizer


@pytest.fixture
def char_tokenizer() -> Iterator[CharTokenizer]:
    """
    Patch the tokenizer cache so every encoding is the character tokenizer.
    Avoids downloading tiktoken encodings in restricted environments.
    """
    tokenizer = CharTokenizer()
    with patch("ragbook.engines.token_splitter.get_cached_tokenizer", return_value=tokenizer):
        yield tokenizer


@pytest.fixture
def fake_embeddings() -> DeterministicFakeEmbedding:
    return DeterministicFakeEmbedding(size=32)
