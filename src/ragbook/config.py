"""
Configuration module for the ragbook system.
This module handles environment variables and system-wide settings that are not part of the domain model.
"""

import logging
import os

logger = logging.getLogger(__name__)


def get_openai_api_key() -> str | None:
    """
    Retrieve the OpenAI API key from environment variables.

    Returns:
        The API key as a string if set, otherwise None.
    """
    api_key = os.environ.get("OPENAI_API_KEY")
    if not api_key:
        logger.warning("OPENAI_API_KEY environment variable is not set.")
    return api_key


def get_openai_base_url() -> str | None:
    """
    Retrieve an optional OpenAI-compatible base URL from environment variables.

    Returns:
        The Base URL, or None to use the provider default.
    """
    return os.environ.get("OPENAI_BASE_URL") or None
