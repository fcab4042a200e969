"""
ragbook: structured output repair, token budgeting and PDF question answering.
This is the root package containing engines, agents, parsers and loaders.
"""

from domain_models.config import PipelineConfig
from ragbook.agents.qa import RetrievalQA
from ragbook.engines.token_splitter import TokenTextSplitter
from ragbook.parsers.output_fixer import OutputFixingParser, RetryWithErrorParser

__all__ = [
    "OutputFixingParser",
    "PipelineConfig",
    "RetrievalQA",
    "RetryWithErrorParser",
    "TokenTextSplitter",
]
