"""
Abstract base class for answer generators.

The generator takes the graded chunks and produces an answer. It is its
own component so generation can be tested with canned documents and a
fake model gateway, without any retrieval.
"""

from abc import ABC, abstractmethod
from typing import Optional

from rag_agent.models.document import ScoredDocument, Turn
from rag_agent.models.result import GenerationResult


class BaseGenerator(ABC):
    """
    Contract for answer generators.

    Every generator receives the question, the context chunks and an
    optional conversation history, and returns a GenerationResult.
    """

    @abstractmethod
    async def agenerate(
        self,
        question: str,
        documents: list[ScoredDocument],
        history: Optional[list[Turn]] = None,
    ) -> GenerationResult:
        """
        Generate an answer from context chunks.

        Args:
            question: The user's question.
            documents: Chunks to use as context, in order. May be empty.
            history: Earlier conversation turns, oldest first.

        Returns:
            GenerationResult with the answer, sources, and model name.
        """
        ...
