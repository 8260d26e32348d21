"""
Pydantic models shared across the RAG agent.

Import from here rather than reaching into submodules:
    from rag_agent.models import Chunk, ScoredDocument, RAGResponse
"""

from .document import Chunk, ChunkMetadata, ScoredDocument, Sources, Turn, upload_identifier
from .result import (
    GenerationResult,
    GradedAnswer,
    RAGResponse,
    RelevanceVerdict,
    RetrievalResult,
    format_documents,
)

__all__ = [
    # Document
    "Chunk",
    "ChunkMetadata",
    "ScoredDocument",
    "Sources",
    "Turn",
    "upload_identifier",
    # Result
    "RetrievalResult",
    "RelevanceVerdict",
    "GenerationResult",
    "GradedAnswer",
    "RAGResponse",
    "format_documents",
]
