"""
RAG Agent: conversational question answering over URLs and documents.

Quick start:
    import asyncio
    from rag_agent import GradedRAG, Sources

    rag = GradedRAG()
    response = asyncio.run(rag.run_pipeline(
        "Where is the Eiffel Tower?",
        Sources(urls=["https://en.wikipedia.org/wiki/Eiffel_Tower"]),
    ))
    print(response.answer)

Pipeline: retrieve → grade documents → generate → grade answer,
with a cached vector index per source set.
"""

from rag_agent.config import (
    AgentConfig,
    EmbeddingConfig,
    GradingPolicy,
    LLMConfig,
    LLMProvider,
    PipelineConfig,
    RagConfig,
    RetrieverStrategy,
    TimeoutConfig,
)
from rag_agent.errors import (
    ClassificationFailure,
    EmbeddingFailure,
    FetchFailure,
    GenerationFailure,
    InvalidInput,
    PipelineTimeout,
    RAGAgentError,
    describe_error,
)
from rag_agent.indexing import IndexCache, UploadedFile, VectorIndex, decode_upload
from rag_agent.models import RAGResponse, Sources, Turn
from rag_agent.techniques import GradedRAG

__all__ = [
    # Technique (public API)
    "GradedRAG",
    # Config
    "AgentConfig",
    "LLMConfig",
    "LLMProvider",
    "EmbeddingConfig",
    "RagConfig",
    "RetrieverStrategy",
    "TimeoutConfig",
    "PipelineConfig",
    "GradingPolicy",
    # Inputs / outputs
    "Sources",
    "Turn",
    "UploadedFile",
    "decode_upload",
    "RAGResponse",
    # Index
    "IndexCache",
    "VectorIndex",
    # Errors
    "RAGAgentError",
    "InvalidInput",
    "FetchFailure",
    "EmbeddingFailure",
    "ClassificationFailure",
    "GenerationFailure",
    "PipelineTimeout",
    "describe_error",
]

__version__ = "0.1.0"
