from unittest.mock import MagicMock, patch

import pytest
from langchain_core.messages import AIMessage

from domain_models.config import PipelineConfig
from ragbook.exceptions import ConfigurationError
from ragbook.llm import build_chat_model, message_text, retrying


@patch("ragbook.llm.ChatOpenAI")
def test_build_chat_model(mock_chat_cls: MagicMock, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key")
    monkeypatch.delenv("OPENAI_BASE_URL", raising=False)
    config = PipelineConfig(llm_temperature=0.5, max_retries=5)

    build_chat_model("gpt-4o", config)

    _, kwargs = mock_chat_cls.call_args
    assert kwargs["model"] == "gpt-4o"
    assert kwargs["api_key"].get_secret_value() == "sk-test-key"
    assert kwargs["temperature"] == 0.5
    assert kwargs["max_retries"] == 5
    assert "base_url" not in kwargs


@patch("ragbook.llm.ChatOpenAI")
def test_build_chat_model_base_url(mock_chat_cls: MagicMock, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key")
    monkeypatch.setenv("OPENAI_BASE_URL", "http://localhost:8000/v1")

    build_chat_model("gpt-4o-mini", PipelineConfig())

    _, kwargs = mock_chat_cls.call_args
    assert kwargs["base_url"] == "http://localhost:8000/v1"


def test_build_chat_model_missing_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
        build_chat_model("gpt-4o", PipelineConfig())


def test_message_text_variants() -> None:
    assert message_text("plain") == "plain"
    assert message_text(AIMessage(content="hello")) == "hello"
    assert message_text(AIMessage(content=["Part 1", " Part 2"])) == "Part 1 Part 2"
    assert (
        message_text(AIMessage(content=[{"type": "text", "text": "block"}, "tail"]))
        == "blocktail"
    )


def test_retrying_reraises_after_attempts() -> None:
    config = PipelineConfig(max_retries=2, retry_min_wait=0, retry_max_wait=0)
    calls = MagicMock(side_effect=RuntimeError("boom"))

    with pytest.raises(RuntimeError, match="boom"):
        for attempt in retrying(config):
            with attempt:
                calls()

    assert calls.call_count == 2
