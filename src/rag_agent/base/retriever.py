"""
Abstract base class for retrievers.

A retriever takes a query and returns relevant chunks from a vector
index. The search policy (plain similarity or MMR) is the only thing
that differs between implementations, so the pipeline never needs to
know which one is active.
"""

from abc import ABC, abstractmethod
from typing import Optional

from rag_agent.models.result import RetrievalResult


class BaseRetriever(ABC):
    """
    Contract for retrievers.

    Every retriever returns a RetrievalResult which wraps a list of
    ScoredDocuments plus metadata about the retrieval (query used,
    strategy, candidate count).
    """

    @abstractmethod
    async def aretrieve(self, query: str, k: Optional[int] = None) -> RetrievalResult:
        """
        Retrieve chunks for a natural language query.

        Args:
            query: The user's question.
            k: Number of chunks to return. Defaults to the configured k.

        Returns:
            RetrievalResult with scored documents ranked from 0.
        """
        ...
