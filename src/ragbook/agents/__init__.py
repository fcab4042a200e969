"""
Agents package for ragbook.
Contains the retrieval question-answering agent.
"""

from ragbook.agents.qa import RetrievalQA, format_documents

__all__ = ["RetrievalQA", "format_documents"]
