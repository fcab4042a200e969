from unittest.mock import patch

import pytest

from domain_models.config import PipelineConfig
from domain_models.manifest import Chunk
from ragbook.engines.token_splitter import TokenTextSplitter, get_cached_tokenizer
from tests.helpers import CharTokenizer, make_page


def test_split_with_overlap(char_tokenizer: CharTokenizer) -> None:
    splitter = TokenTextSplitter(PipelineConfig(token_chunk_size=4, token_overlap=1))
    assert splitter.split_text("abcdefghij") == ["abcd", "defg", "ghij"]


def test_split_without_overlap_keeps_short_tail(char_tokenizer: CharTokenizer) -> None:
    splitter = TokenTextSplitter(PipelineConfig(token_chunk_size=4, token_overlap=0))
    assert splitter.split_text("abcdefghij") == ["abcd", "efgh", "ij"]


def test_text_shorter_than_window(char_tokenizer: CharTokenizer) -> None:
    splitter = TokenTextSplitter(PipelineConfig(token_chunk_size=50))
    assert splitter.split_text("short") == ["short"]


def test_empty_input(char_tokenizer: CharTokenizer) -> None:
    splitter = TokenTextSplitter()
    assert splitter.split_text("") == []
    assert list(splitter.create_chunks("")) == []
    assert splitter.count_tokens("") == 0


def test_count_tokens(char_tokenizer: CharTokenizer) -> None:
    assert TokenTextSplitter().count_tokens("hello") == 5


def test_per_call_overrides(char_tokenizer: CharTokenizer) -> None:
    splitter = TokenTextSplitter(PipelineConfig(token_chunk_size=100))
    assert splitter.split_text("abcdef", chunk_size=2, overlap=0) == ["ab", "cd", "ef"]


@pytest.mark.parametrize(("chunk_size", "overlap"), [(0, 0), (4, 4), (4, 5), (4, -1)])
def test_invalid_overrides(char_tokenizer: CharTokenizer, chunk_size: int, overlap: int) -> None:
    splitter = TokenTextSplitter()
    with pytest.raises(ValueError):
        splitter.split_text("abcdef", chunk_size=chunk_size, overlap=overlap)


def test_windows_respect_limits_and_overlap(char_tokenizer: CharTokenizer) -> None:
    text = "The quick brown fox jumps over the lazy dog. " * 20
    splitter = TokenTextSplitter(PipelineConfig(token_chunk_size=37, token_overlap=9))

    chunks = list(splitter.create_chunks(text))

    assert [c.index for c in chunks] == list(range(len(chunks)))
    assert all(c.token_count <= 37 for c in chunks)
    for prev, nxt in zip(chunks, chunks[1:], strict=False):
        assert nxt.start_token == prev.end_token - 9
        assert prev.text[-9:] == nxt.text[:9]
    assert chunks[-1].end_token == len(text)

    # Dropping the overlap from every window but the first rebuilds the text.
    rebuilt = chunks[0].text + "".join(c.text[9:] for c in chunks[1:])
    assert rebuilt == text


def test_create_chunks_skips_blank_windows(char_tokenizer: CharTokenizer) -> None:
    splitter = TokenTextSplitter(PipelineConfig(token_chunk_size=4))

    chunks = list(splitter.create_chunks("abcd    efgh", metadata={"source": "x"}))

    assert [c.text for c in chunks] == ["abcd", "efgh"]
    assert [c.index for c in chunks] == [0, 1]
    assert chunks[1].start_token == 8
    assert all(isinstance(c, Chunk) for c in chunks)
    assert chunks[0].metadata == {"source": "x"}
    # Metadata is copied per chunk.
    assert chunks[0].metadata is not chunks[1].metadata


def test_split_documents_carries_metadata(char_tokenizer: CharTokenizer) -> None:
    splitter = TokenTextSplitter(PipelineConfig(token_chunk_size=5))
    docs = [make_page("aaaaabbbbb", page=0), make_page("ccc", page=1)]

    out = splitter.split_documents(docs)

    assert [d.page_content for d in out] == ["aaaaa", "bbbbb", "ccc"]
    assert [d.metadata["page"] for d in out] == [0, 0, 1]
    assert [d.metadata["chunk_index"] for d in out] == [0, 1, 2]
    assert out[2].metadata["token_count"] == 3
    assert "chunk_index" not in docs[0].metadata


def test_get_cached_tokenizer_rejects_unknown_model() -> None:
    with pytest.raises(ValueError, match="not in the allowed list"):
        get_cached_tokenizer("invalid_model_name_that_does_not_exist")


def test_get_cached_tokenizer_wraps_load_failure() -> None:
    get_cached_tokenizer.cache_clear()
    with (
        patch("tiktoken.encoding_for_model", side_effect=KeyError("gpt2")),
        patch("tiktoken.get_encoding", side_effect=OSError("offline")),
        pytest.raises(ValueError, match="Could not load tokenizer"),
    ):
        get_cached_tokenizer("gpt2")
    get_cached_tokenizer.cache_clear()


def test_splitter_uses_configured_tokenizer() -> None:
    tokenizer = CharTokenizer()
    with patch(
        "ragbook.engines.token_splitter.get_cached_tokenizer", return_value=tokenizer
    ) as mock_get:
        TokenTextSplitter(PipelineConfig(tokenizer_model="p50k_base"))
    mock_get.assert_called_once_with("p50k_base")
