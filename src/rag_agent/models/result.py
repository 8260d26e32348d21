"""
Result models for retrieval, grading and generation outputs.

These are what each stage hands to the next, and what the caller gets
back at the end of a run.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from .document import ScoredDocument


# ---------------------------------------------------------------------------
# Retrieval results
# ---------------------------------------------------------------------------

class RetrievalResult(BaseModel):
    """
    Output of the retrieval stage.

    Bundles the retrieved documents with how retrieval was done, so
    logs and responses can say which strategy produced them.
    """

    documents: list[ScoredDocument] = Field(default_factory=list)
    query_used: str = Field(description="The query sent to the vector index")
    strategy: str = Field(default="similarity", description="Retrieval strategy used")
    total_candidates: int = Field(
        default=0,
        description="How many chunks were considered before selection",
    )


# ---------------------------------------------------------------------------
# Grading
# ---------------------------------------------------------------------------

class RelevanceVerdict(BaseModel):
    """
    Binary relevance judgement from the grading model.

    raw keeps the model's text for debugging; relevant is the parsed value.
    """

    relevant: bool
    raw: str = Field(default="", description="Unparsed model output")


class GradedAnswer(BaseModel):
    """
    Answer after answer grading.

    verdict:
        relevant      grader accepted the answer
        not_relevant  grader rejected it (answer replaced or annotated)
        ungraded      grading failed; answer passed through unchanged
        empty         nothing was generated; a fixed message was substituted
    """

    answer: str
    verdict: Literal["relevant", "not_relevant", "ungraded", "empty"]


# ---------------------------------------------------------------------------
# Generation results
# ---------------------------------------------------------------------------

class GenerationResult(BaseModel):
    """
    Output of the generation stage.

    The answer plus the sources that were in context and the model that
    produced it.
    """

    answer: str = Field(description="The generated answer")
    sources: list[str] = Field(
        default_factory=list,
        description="Source identifiers (URLs, file names) that were in context",
    )
    model: str = Field(default="", description="Model that produced this answer")


# ---------------------------------------------------------------------------
# Full response (top-level output)
# ---------------------------------------------------------------------------

class RAGResponse(BaseModel):
    """
    The complete response of one pipeline run.

    answer is None only when the run terminated early and no fallback
    answer is configured. metadata carries run details: index cache hit,
    how many chunks were retrieved and kept, the answer verdict.
    """

    question: str
    answer: Optional[str] = Field(default=None, description="The final answer")
    documents: list[ScoredDocument] = Field(
        default_factory=list, description="Chunks used as context, in order",
    )
    technique: str = Field(default="graded_rag")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def passages(self) -> list[str]:
        return format_documents(self.documents)

    def to_payload(self) -> dict[str, Any]:
        """Shape returned by the HTTP layer for a successful query."""
        passages = self.passages
        return {
            "success": True,
            "question": self.question,
            "documents": passages,
            "documentCount": len(passages),
            "generatedAnswer": self.answer,
        }


def format_documents(documents: list[ScoredDocument]) -> list[str]:
    """Plain passage texts, in order."""
    return [doc.chunk.content for doc in documents]
