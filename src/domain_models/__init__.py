"""
Core domain models and configuration schemas for the ragbook project.
This package contains Pydantic definitions used throughout the system.
"""

from .config import PipelineConfig
from .manifest import Answer, Chunk, SourceReference

__all__ = ["Answer", "Chunk", "PipelineConfig", "SourceReference"]
