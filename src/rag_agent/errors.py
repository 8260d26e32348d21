"""
Error taxonomy for the RAG agent.

Every failure that leaves the pipeline is one of these, carrying the
stage it came from and the underlying cause so callers can log it and
decide whether a retry makes sense:

    InvalidInput          bad request, raised before any work starts. Never retry.
    FetchFailure          a source URL could not be loaded.
    EmbeddingFailure      the index build could not embed a chunk.
    ClassificationFailure a grading call failed or returned garbage.
                          Recovered inside the graders, never reaches callers.
    GenerationFailure     the answer-generation call failed. Fatal to the run.
    PipelineTimeout       a stage ran past its deadline. Try again later.

Usage:
    try:
        response = await rag.run_pipeline(question, sources)
    except RAGAgentError as exc:
        print(describe_error(exc))
"""

from typing import Optional


class RAGAgentError(Exception):
    """Base class for all pipeline failures."""

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.cause = cause

    def __str__(self) -> str:
        parts = [self.message]
        if self.stage:
            parts.append(f"stage={self.stage}")
        if self.cause is not None:
            parts.append(f"cause={type(self.cause).__name__}: {self.cause}")
        return " | ".join(parts)


class InvalidInput(RAGAgentError):
    """The request itself is unusable (no sources, empty question, ...)."""


class FetchFailure(RAGAgentError):
    """A source document could not be loaded."""

    def __init__(self, message: str, source: str = "", stage: Optional[str] = None,
                 cause: Optional[BaseException] = None):
        super().__init__(message, stage=stage, cause=cause)
        self.source = source


class EmbeddingFailure(RAGAgentError):
    """Embedding a chunk or the query failed."""


class ClassificationFailure(RAGAgentError):
    """A relevance classification could not be obtained or parsed."""


class GenerationFailure(RAGAgentError):
    """The answer-generation model call failed."""


class PipelineTimeout(RAGAgentError, TimeoutError):
    """A stage exceeded its deadline."""

    def __init__(self, message: str, stage: Optional[str] = None,
                 timeout: Optional[float] = None, cause: Optional[BaseException] = None):
        super().__init__(message, stage=stage, cause=cause)
        self.timeout = timeout


def describe_error(exc: BaseException) -> str:
    """
    Human-readable message for a failed request.

    Timeouts and invalid input get their own wording; everything else is a
    generic "failed to process" message with the cause attached.
    """
    if isinstance(exc, PipelineTimeout):
        return (
            "Request timeout: the operation took too long. "
            "Please try with fewer URLs or a simpler question."
        )
    if isinstance(exc, InvalidInput):
        return exc.message
    cause = exc.cause if isinstance(exc, RAGAgentError) and exc.cause is not None else exc
    return f"Failed to process query: {cause}"
