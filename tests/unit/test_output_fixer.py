import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage
from langchain_core.prompts import PromptTemplate

from domain_models.config import PipelineConfig
from domain_models.examples import Actor
from ragbook.exceptions import OutputRepairError
from ragbook.parsers.output_fixer import OutputFixingParser, RetryWithErrorParser
from tests.constants import FENCED_ACTOR, FIXED_ACTOR, INCOMPLETE_ACTOR, MALFORMED_ACTOR


@pytest.fixture
def config() -> PipelineConfig:
    return PipelineConfig(max_retries=1, retry_min_wait=0, retry_max_wait=0)


@pytest.fixture
def mock_llm() -> MagicMock:
    llm = MagicMock()
    llm.invoke.return_value = AIMessage(content=FIXED_ACTOR)
    return llm


def test_valid_completion_skips_repair(mock_llm: MagicMock, config: PipelineConfig) -> None:
    parser = OutputFixingParser.from_llm(mock_llm, Actor, config=config)

    actor = parser.parse(FIXED_ACTOR)

    assert actor == Actor(name="Tom Hanks", film_names=["Forrest Gump"])
    mock_llm.invoke.assert_not_called()


def test_fenced_completion_parses(mock_llm: MagicMock, config: PipelineConfig) -> None:
    parser = OutputFixingParser.from_llm(mock_llm, Actor, config=config)
    assert parser.parse(FENCED_ACTOR).film_names == ["Forrest Gump", "Big"]
    mock_llm.invoke.assert_not_called()


def test_malformed_completion_is_repaired(config: PipelineConfig) -> None:
    llm = FakeListChatModel(responses=[FIXED_ACTOR])
    parser = OutputFixingParser.from_llm(llm, Actor, config=config)

    actor = parser.parse(MALFORMED_ACTOR)

    assert actor.name == "Tom Hanks"
    assert actor.film_names == ["Forrest Gump"]


def test_repair_prompt_contents(mock_llm: MagicMock, config: PipelineConfig) -> None:
    parser = OutputFixingParser.from_llm(mock_llm, Actor, config=config)

    parser.parse(MALFORMED_ACTOR)

    args, _ = mock_llm.invoke.call_args
    messages = args[0]
    assert len(messages) == 1
    prompt = messages[0].content
    assert MALFORMED_ACTOR in prompt
    assert parser.get_format_instructions() in prompt
    assert "did not satisfy the constraints" in prompt


def test_schema_violation_is_repaired(mock_llm: MagicMock, config: PipelineConfig) -> None:
    parser = OutputFixingParser.from_llm(mock_llm, Actor, config=config)
    assert parser.parse(INCOMPLETE_ACTOR).film_names == ["Forrest Gump"]
    mock_llm.invoke.assert_called_once()


def test_repair_exhausted(config: PipelineConfig) -> None:
    llm = FakeListChatModel(responses=["still not json", "nope"])
    parser = OutputFixingParser.from_llm(llm, Actor, config=config, max_fix_attempts=2)

    with pytest.raises(OutputRepairError) as exc:
        parser.parse(MALFORMED_ACTOR)

    assert exc.value.attempts == 2
    assert exc.value.completion == "nope"
    assert exc.value.__cause__ is not None


def test_zero_attempts_fails_immediately(mock_llm: MagicMock, config: PipelineConfig) -> None:
    parser = OutputFixingParser.from_llm(mock_llm, Actor, config=config, max_fix_attempts=0)

    with pytest.raises(OutputRepairError) as exc:
        parser.parse(MALFORMED_ACTOR)

    assert exc.value.attempts == 0
    assert exc.value.completion == MALFORMED_ACTOR
    mock_llm.invoke.assert_not_called()


def test_attempts_default_from_config(mock_llm: MagicMock) -> None:
    config = PipelineConfig(max_fix_attempts=3)
    parser = OutputFixingParser.from_llm(mock_llm, Actor, config=config)
    assert parser.max_fix_attempts == 3


def test_negative_attempts_rejected(mock_llm: MagicMock) -> None:
    with pytest.raises(ValueError):
        OutputFixingParser.from_llm(mock_llm, Actor, max_fix_attempts=-1)


def test_repair_call_failure(config: PipelineConfig) -> None:
    llm = MagicMock()
    llm.invoke.side_effect = RuntimeError("rate_limit")
    parser = OutputFixingParser.from_llm(llm, Actor, config=config)

    with pytest.raises(OutputRepairError, match="Repair call failed"):
        parser.parse(MALFORMED_ACTOR)


def test_transient_repair_failure_is_retried() -> None:
    config = PipelineConfig(max_retries=2, retry_min_wait=0, retry_max_wait=0)
    llm = MagicMock()
    llm.invoke.side_effect = [RuntimeError("timeout"), AIMessage(content=FIXED_ACTOR)]
    parser = OutputFixingParser.from_llm(llm, Actor, config=config)

    assert parser.parse(MALFORMED_ACTOR).name == "Tom Hanks"
    assert llm.invoke.call_count == 2


def test_aparse_repairs(config: PipelineConfig) -> None:
    llm = FakeListChatModel(responses=[FIXED_ACTOR])
    parser = OutputFixingParser.from_llm(llm, Actor, config=config)

    actor = asyncio.run(parser.aparse(MALFORMED_ACTOR))

    assert actor.film_names == ["Forrest Gump"]


def test_aparse_repair_call_failure(config: PipelineConfig) -> None:
    llm = MagicMock()
    llm.ainvoke = AsyncMock(side_effect=RuntimeError("boom"))
    parser = OutputFixingParser.from_llm(llm, Actor, config=config)

    with pytest.raises(OutputRepairError):
        asyncio.run(parser.aparse(MALFORMED_ACTOR))


def test_retry_with_error_includes_prompt(mock_llm: MagicMock, config: PipelineConfig) -> None:
    parser = RetryWithErrorParser.from_llm(mock_llm, Actor, config=config)
    prompt = PromptTemplate.from_template("Name one actor and their films.\n{format}").invoke(
        {"format": parser.get_format_instructions()}
    )

    actor = parser.parse_with_prompt(INCOMPLETE_ACTOR, prompt)

    assert actor.film_names == ["Forrest Gump"]
    args, _ = mock_llm.invoke.call_args
    content = args[0][0].content
    assert content.startswith("Prompt:")
    assert "Name one actor and their films." in content
    assert INCOMPLETE_ACTOR in content


def test_retry_with_error_without_prompt_uses_fix_template(
    mock_llm: MagicMock, config: PipelineConfig
) -> None:
    parser = RetryWithErrorParser.from_llm(mock_llm, Actor, config=config)

    parser.parse(MALFORMED_ACTOR)

    args, _ = mock_llm.invoke.call_args
    assert args[0][0].content.startswith("Instructions:")


def test_aparse_with_prompt(config: PipelineConfig) -> None:
    llm = FakeListChatModel(responses=[FIXED_ACTOR])
    parser = RetryWithErrorParser.from_llm(llm, Actor, config=config)

    actor = asyncio.run(parser.aparse_with_prompt(INCOMPLETE_ACTOR, "Name one actor."))

    assert actor.name == "Tom Hanks"
