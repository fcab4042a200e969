"""
Structured output repair.

Wraps a langchain output parser so that a completion which fails to parse is
sent, together with the format instructions and the parse error, to an
auxiliary chat model whose corrected completion is parsed instead.
"""

import logging
import uuid
from typing import Generic, TypeVar

from langchain_core.exceptions import OutputParserException
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage
from langchain_core.output_parsers import BaseOutputParser, PydanticOutputParser
from langchain_core.prompt_values import PromptValue
from pydantic import BaseModel

from domain_models.config import PipelineConfig
from ragbook.exceptions import OutputRepairError
from ragbook.llm import async_retrying, message_text, retrying
from ragbook.utils.prompts import FIX_TEMPLATE, RETRY_WITH_ERROR_TEMPLATE

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class OutputFixingParser(Generic[T]):
    """
    Parser that asks a model to repair completions the wrapped parser rejects.
    """

    def __init__(
        self,
        parser: BaseOutputParser[T],
        llm: BaseChatModel,
        config: PipelineConfig | None = None,
        max_fix_attempts: int | None = None,
    ) -> None:
        """
        Args:
            parser: The parser whose failures should be repaired.
            llm: Auxiliary chat model used for repairs.
            config: Retry settings; defaults to PipelineConfig().
            max_fix_attempts: Repair rounds before giving up. Overrides config.max_fix_attempts.
        """
        self.parser = parser
        self.llm = llm
        self.config = config or PipelineConfig()
        self.max_fix_attempts = (
            self.config.max_fix_attempts if max_fix_attempts is None else max_fix_attempts
        )
        if self.max_fix_attempts < 0:
            msg = f"max_fix_attempts must be >= 0 (got {self.max_fix_attempts})."
            raise ValueError(msg)

    @classmethod
    def from_llm(
        cls,
        llm: BaseChatModel,
        pydantic_object: type[M],
        config: PipelineConfig | None = None,
        max_fix_attempts: int | None = None,
    ) -> "OutputFixingParser[M]":
        """Build a fixing parser around a PydanticOutputParser for ``pydantic_object``."""
        parser: PydanticOutputParser[M] = PydanticOutputParser(pydantic_object=pydantic_object)
        return cls(parser, llm, config=config, max_fix_attempts=max_fix_attempts)  # type: ignore[arg-type]

    def get_format_instructions(self) -> str:
        return self.parser.get_format_instructions()

    def parse(self, completion: str) -> T:
        """
        Parse ``completion``, repairing it with the auxiliary model on failure.

        Raises:
            OutputRepairError: If the completion cannot be parsed after all repair rounds,
                or a repair call itself fails.
        """
        return self._parse(completion, prompt=None)

    async def aparse(self, completion: str) -> T:
        """Async version of :meth:`parse`."""
        return await self._aparse(completion, prompt=None)

    def _parse(self, completion: str, prompt: str | None) -> T:
        request_id = str(uuid.uuid4())
        current = completion
        attempts = 0
        while True:
            try:
                return self.parser.parse(current)
            except OutputParserException as e:
                if attempts >= self.max_fix_attempts:
                    raise self._exhausted(current, attempts, e, request_id) from e
                attempts += 1
                logger.warning(
                    f"[{request_id}] Output failed to parse, requesting repair "
                    f"(Attempt {attempts}/{self.max_fix_attempts}): {e}"
                )
                messages = self._repair_messages(current, e, prompt)
                current = self._invoke_llm(messages, current, attempts, request_id)

    async def _aparse(self, completion: str, prompt: str | None) -> T:
        request_id = str(uuid.uuid4())
        current = completion
        attempts = 0
        while True:
            try:
                return self.parser.parse(current)
            except OutputParserException as e:
                if attempts >= self.max_fix_attempts:
                    raise self._exhausted(current, attempts, e, request_id) from e
                attempts += 1
                logger.warning(
                    f"[{request_id}] Output failed to parse, requesting repair "
                    f"(Attempt {attempts}/{self.max_fix_attempts}): {e}"
                )
                messages = self._repair_messages(current, e, prompt)
                current = await self._ainvoke_llm(messages, current, attempts, request_id)

    def _repair_messages(
        self, completion: str, error: OutputParserException, prompt: str | None
    ) -> list[BaseMessage]:
        content = FIX_TEMPLATE.format(
            instructions=self.get_format_instructions(),
            completion=completion,
            error=str(error),
        )
        return [HumanMessage(content=content)]

    def _invoke_llm(
        self, messages: list[BaseMessage], completion: str, attempts: int, request_id: str
    ) -> str:
        try:
            for attempt in retrying(self.config):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning(
                            f"[{request_id}] Retrying repair call "
                            f"(Attempt {attempt.retry_state.attempt_number}/{self.config.max_retries})"
                        )
                    response = self.llm.invoke(messages)
        except Exception as e:
            logger.exception(f"[{request_id}] Repair call failed.")
            msg = f"Repair call failed: {e}"
            raise OutputRepairError(msg, completion=completion, attempts=attempts) from e
        return message_text(response)

    async def _ainvoke_llm(
        self, messages: list[BaseMessage], completion: str, attempts: int, request_id: str
    ) -> str:
        try:
            async for attempt in async_retrying(self.config):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning(
                            f"[{request_id}] Retrying repair call "
                            f"(Attempt {attempt.retry_state.attempt_number}/{self.config.max_retries})"
                        )
                    response = await self.llm.ainvoke(messages)
        except Exception as e:
            logger.exception(f"[{request_id}] Repair call failed.")
            msg = f"Repair call failed: {e}"
            raise OutputRepairError(msg, completion=completion, attempts=attempts) from e
        return message_text(response)

    def _exhausted(
        self, completion: str, attempts: int, error: OutputParserException, request_id: str
    ) -> OutputRepairError:
        msg = f"Failed to parse output after {attempts} repair attempt(s): {error}"
        logger.error(f"[{request_id}] {msg}")
        return OutputRepairError(msg, completion=completion, attempts=attempts)


class RetryWithErrorParser(OutputFixingParser[T]):
    """
    Repairs completions by replaying the original prompt alongside the error.

    Useful when the completion is parseable but incomplete, since the repair
    model can only fill in missing fields if it sees what was asked.
    """

    def parse_with_prompt(self, completion: str, prompt: str | PromptValue) -> T:
        return self._parse(completion, prompt=_prompt_text(prompt))

    async def aparse_with_prompt(self, completion: str, prompt: str | PromptValue) -> T:
        return await self._aparse(completion, prompt=_prompt_text(prompt))

    def _repair_messages(
        self, completion: str, error: OutputParserException, prompt: str | None
    ) -> list[BaseMessage]:
        if prompt is None:
            return super()._repair_messages(completion, error, prompt)
        content = RETRY_WITH_ERROR_TEMPLATE.format(
            prompt=prompt, completion=completion, error=str(error)
        )
        return [HumanMessage(content=content)]


def _prompt_text(prompt: str | PromptValue) -> str:
    if isinstance(prompt, PromptValue):
        return prompt.to_string()
    return prompt
