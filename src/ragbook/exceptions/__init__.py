"""
Custom exceptions for the ragbook system.
"""


class RagbookError(Exception):
    """
    Base exception for ragbook.
    All custom exceptions in the system should inherit from this.
    """


class ConfigurationError(RagbookError):
    """Raised when required runtime configuration (e.g. an API key) is missing."""


class OutputRepairError(RagbookError):
    """
    Raised when a completion still fails to parse after all repair attempts.

    Keeps the last completion seen and how many repair rounds were spent,
    so callers can log or display what the model actually produced.
    """

    def __init__(self, message: str, completion: str, attempts: int) -> None:
        super().__init__(message)
        self.completion = completion
        self.attempts = attempts


class DocumentLoadError(RagbookError):
    """Raised when a source document cannot be read."""


class RetrievalError(RagbookError):
    """Raised when similarity search against the index fails."""


class AnswerGenerationError(RagbookError):
    """
    Raised when answer synthesis fails.

    This error encapsulates failures calling the chat model,
    such as API connection issues or rate limits.
    """
