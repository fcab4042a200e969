"""
Chat model construction and response helpers.
"""

import logging
from typing import Any

from langchain_core.messages import BaseMessage
from langchain_openai import ChatOpenAI
from pydantic import SecretStr
from tenacity import AsyncRetrying, Retrying, stop_after_attempt, wait_exponential

from domain_models.config import PipelineConfig
from ragbook.config import get_openai_api_key, get_openai_base_url
from ragbook.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def build_chat_model(model_name: str, config: PipelineConfig) -> ChatOpenAI:
    """
    Build a ChatOpenAI client for the given model.

    Args:
        model_name: Chat model name (validated by PipelineConfig).
        config: Supplies temperature and retry settings.

    Raises:
        ConfigurationError: If no API key is configured.
    """
    api_key = get_openai_api_key()
    if not api_key:
        msg = "OPENAI_API_KEY is not set. Cannot initialize chat model."
        raise ConfigurationError(msg)

    kwargs: dict[str, Any] = {}
    base_url = get_openai_base_url()
    if base_url:
        kwargs["base_url"] = base_url

    logger.debug(f"Initializing chat model {model_name}")
    return ChatOpenAI(
        model=model_name,
        api_key=SecretStr(api_key),
        temperature=config.llm_temperature,
        max_retries=config.max_retries,
        **kwargs,
    )


def retrying(config: PipelineConfig) -> Retrying:
    """Tenacity policy for a single model call."""
    return Retrying(
        stop=stop_after_attempt(config.max_retries),
        wait=wait_exponential(multiplier=1, min=config.retry_min_wait, max=config.retry_max_wait),
        reraise=True,
    )


def message_text(message: BaseMessage | str) -> str:
    """
    Extract plain text from a model response.

    Handles string content, lists of strings/content blocks and anything else by str().
    """
    if isinstance(message, str):
        return message

    content: str | list[str | dict[str, Any]] = message.content
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
            else:
                parts.append(str(block))
        return "".join(parts)

    logger.warning(f"Received unexpected content type from LLM: {type(content)}")
    return str(content)


def async_retrying(config: PipelineConfig) -> AsyncRetrying:
    """Async counterpart of :func:`retrying`."""
    return AsyncRetrying(
        stop=stop_after_attempt(config.max_retries),
        wait=wait_exponential(multiplier=1, min=config.retry_min_wait, max=config.retry_max_wait),
        reraise=True,
    )
