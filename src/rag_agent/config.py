"""
Configuration for the RAG agent.

Split into one config per concern so each stage module only receives
what it needs. AgentConfig bundles them all for convenience.

Usage:
    # Full config, passed to GradedRAG
    config = AgentConfig()

    # Override specific parts
    config = AgentConfig(
        llm=LLMConfig(provider="anthropic", model_name="claude-sonnet-4-5-20250929"),
        pipeline=PipelineConfig(grading_policy="strict"),
    )

    # Per-request retrieval tuning
    rag_config = RagConfig(chunk_size=500, retriever_strategy="mmr")
    resolved = rag_config.resolve(documents)
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from langchain_core.documents import Document
from pydantic import BaseModel, ConfigDict, Field

# Load .env from the project root (walks up from this file to find it).
# Runs once at import time, so RAG_* variables are visible to every
# RagConfig.resolve() call.
_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(_env_path)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enums for things with a fixed set of choices
# ---------------------------------------------------------------------------

class LLMProvider(str, Enum):
    """
    Supported LLM providers.

    Each provider needs a different LangChain chat model class
    (ChatOpenAI, ChatAnthropic, ChatOllama), so the set is closed.
    OLLAMA is the local-model backend.
    """

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"


class RetrieverStrategy(str, Enum):
    """Search policy applied over a vector index."""

    SIMILARITY = "similarity"
    MMR = "mmr"


class GradingPolicy(str, Enum):
    """
    What the answer grader does with an answer judged not relevant.

    STRICT replaces it with a fixed "I don't know" message.
    LENIENT keeps it and appends a disclaimer.
    """

    STRICT = "strict"
    LENIENT = "lenient"


# ---------------------------------------------------------------------------
# Built-in defaults
# ---------------------------------------------------------------------------

LONG_DOCUMENT_THRESHOLD = 6000
SHORT_DOCUMENT_THRESHOLD = 1500
LONG_DOCUMENT_CHUNK_SIZE = 900
SHORT_DOCUMENT_CHUNK_SIZE = 400
MEDIUM_DOCUMENT_CHUNK_SIZE = 700
DEFAULT_OVERLAP_RATIO = 0.2

DEFAULT_RETRIEVER_K = 4
DEFAULT_RETRIEVER_FETCH_K = 20
DEFAULT_RETRIEVER_LAMBDA = 0.5

MAX_URLS = 3


# ---------------------------------------------------------------------------
# Per-concern configs
# ---------------------------------------------------------------------------

class LLMConfig(BaseModel):
    """
    LLM configuration.

    Used by: generation/gateway.py

    Every pipeline stage that talks to a model goes through one gateway
    built from this config. provider + model_name determine which
    LangChain chat model class gets instantiated.
    """

    provider: LLMProvider = Field(
        default=LLMProvider.OPENAI,
        description="Which LLM provider to use",
    )
    model_name: str = Field(
        default="gpt-4.1",
        description="Model identifier (e.g. 'gpt-4.1', 'claude-sonnet-4-5-20250929', 'llama3.1')",
    )
    temperature: float = Field(
        default=0.0,
        ge=0.0,
        le=2.0,
        description="Sampling temperature. 0 = deterministic, higher = more creative",
    )
    max_tokens: int = Field(
        default=1024,
        gt=0,
        description="Maximum tokens in the LLM response",
    )
    base_url: Optional[str] = Field(
        default=None,
        description="Override the provider endpoint (e.g. a local Ollama server)",
    )


class EmbeddingConfig(BaseModel):
    """
    Embedding model configuration.

    Used by: indexing/embeddings.py

    Provider is an open string (not an enum) because the embedding
    landscape keeps growing. The factory in indexing/embeddings.py maps
    known provider strings to LangChain classes and raises a clear error
    for unknown ones.

    Examples:
        EmbeddingConfig(provider="openai")
        EmbeddingConfig(provider="huggingface", model_name="sentence-transformers/all-MiniLM-L6-v2")
    """

    provider: str = Field(
        default="openai",
        description="Embedding provider: 'openai', 'huggingface', 'cohere'",
    )
    model_name: str = Field(
        default="text-embedding-3-small",
        description="Embedding model identifier",
    )
    model_kwargs: dict[str, Any] = Field(
        default_factory=dict,
        description="Extra kwargs passed to the embedding model constructor",
    )
    batch_size: int = Field(
        default=64,
        gt=0,
        description="Chunks embedded per request while building an index",
    )


class ResolvedRagConfig(BaseModel):
    """
    RagConfig with every field decided.

    This is what the chunker, the cache key and the retrievers consume.
    Frozen so a resolved config can be shared across concurrent runs.
    """

    model_config = ConfigDict(frozen=True)

    chunk_size: int
    chunk_overlap: int
    retriever_strategy: RetrieverStrategy
    retriever_k: int
    retriever_fetch_k: int
    retriever_lambda: float


class RagConfig(BaseModel):
    """
    Per-request retrieval configuration.

    Used by: indexing/chunking.py, indexing/cache.py, retrieval/search.py

    Every field is optional. An unset field falls back to its RAG_* env
    variable, then to a built-in default. chunk_size has no fixed default:
    when nothing sets it, the size adapts to the mean document length
    (see adaptive_chunk_size).

    Out-of-range values are clamped rather than rejected, so a bad request
    can never produce zero-progress chunking.
    """

    chunk_size: Optional[int] = Field(default=None, description="Characters per chunk")
    chunk_overlap: Optional[int] = Field(default=None, description="Characters shared by adjacent chunks")
    retriever_strategy: Optional[RetrieverStrategy] = Field(
        default=None, description="'similarity' or 'mmr'",
    )
    retriever_k: Optional[int] = Field(default=None, description="Number of passages returned")
    retriever_fetch_k: Optional[int] = Field(
        default=None, description="MMR candidate pool size (>= retriever_k)",
    )
    retriever_lambda: Optional[float] = Field(
        default=None, description="MMR relevance/diversity weight in [0, 1]",
    )

    def explicit_chunk_size(self) -> Optional[int]:
        """Chunk size from the config or environment, or None when adaptive sizing applies."""
        return _positive(self.chunk_size) or _positive(_env_int("RAG_CHUNK_SIZE"))

    def explicit_chunk_overlap(self, chunk_size: int) -> int:
        """Overlap from the config or environment, clamped below chunk_size."""
        overlap = self.chunk_overlap
        if overlap is None:
            overlap = _env_int("RAG_CHUNK_OVERLAP")
        return clamp_overlap(overlap, chunk_size)

    def chunking_signature(self) -> tuple[str, str]:
        """
        Effective (chunk_size, chunk_overlap) as known before any document is loaded.

        "auto" stands for a value adaptive sizing will pick from the
        documents. Two configs with the same signature always chunk the
        same documents identically.
        """
        size = self.explicit_chunk_size()
        if size is not None:
            return str(size), str(self.explicit_chunk_overlap(size))

        overlap = self.chunk_overlap
        if overlap is None:
            overlap = _env_int("RAG_CHUNK_OVERLAP")
        if overlap is None or overlap < 0:
            return "auto", "auto"
        return "auto", str(overlap)

    def resolve(self, documents: Optional[list[Document]] = None) -> ResolvedRagConfig:
        """
        Decide every field.

        Args:
            documents: Source documents. Only used for adaptive chunk sizing
                when no explicit chunk size is configured.

        Returns:
            ResolvedRagConfig with concrete, clamped values.
        """
        chunk_size = self.explicit_chunk_size()
        if chunk_size is None:
            chunk_size = adaptive_chunk_size(documents or [])
        chunk_overlap = self.explicit_chunk_overlap(chunk_size)

        strategy = self.retriever_strategy or _env_strategy() or RetrieverStrategy.SIMILARITY

        k = _positive(self.retriever_k) or _positive(_env_int("RAG_RETRIEVER_K")) or DEFAULT_RETRIEVER_K
        fetch_k = (
            _positive(self.retriever_fetch_k)
            or _positive(_env_int("RAG_RETRIEVER_FETCH_K"))
            or DEFAULT_RETRIEVER_FETCH_K
        )
        if fetch_k < k:
            fetch_k = k

        lam = self.retriever_lambda
        if lam is None:
            lam = _env_float("RAG_RETRIEVER_LAMBDA")
        if lam is None:
            lam = DEFAULT_RETRIEVER_LAMBDA
        lam = min(1.0, max(0.0, lam))

        return ResolvedRagConfig(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            retriever_strategy=strategy,
            retriever_k=k,
            retriever_fetch_k=fetch_k,
            retriever_lambda=lam,
        )


class TimeoutConfig(BaseModel):
    """
    Deadlines, in seconds, for every external call.

    query_timeout bounds a whole run when the index is already cached
    (or supplied by the caller). build_timeout bounds a whole run that
    has to build the index first.
    """

    query_timeout: float = Field(default=25.0, gt=0)
    build_timeout: float = Field(default=180.0, gt=0)
    llm_timeout: float = Field(default=30.0, gt=0)
    embedding_timeout: float = Field(default=60.0, gt=0)
    fetch_timeout: float = Field(default=20.0, gt=0)


class PipelineConfig(BaseModel):
    """
    Behaviour of the graded pipeline.

    Used by: graphs/pipeline.py, generation/grading.py, generation/generate.py
    """

    grading_policy: GradingPolicy = Field(default=GradingPolicy.LENIENT)
    short_circuit_on_empty: bool = Field(
        default=True,
        description="Terminate without generating when no documents survive grading",
    )
    fallback_answer: Optional[str] = Field(
        default="I couldn't find any relevant information in the provided sources.",
        description="Answer returned on termination. None returns no answer.",
    )
    history_window: int = Field(
        default=6,
        ge=0,
        description="How many of the latest conversation turns go into the prompt",
    )
    max_grading_concurrency: int = Field(
        default=8,
        gt=0,
        description="Parallel document-grading calls per run",
    )
    grading_char_limit: int = Field(
        default=2000,
        gt=0,
        description="Chunk text is truncated to this length before grading",
    )
    fallback_top_n: int = Field(
        default=3,
        gt=0,
        description="Chunks kept when grading rejects everything",
    )


# ---------------------------------------------------------------------------
# Top-level config bundling everything
# ---------------------------------------------------------------------------

class AgentConfig(BaseModel):
    """
    Complete agent configuration.

    GradedRAG receives this and hands slices to each stage. All sub-configs
    have sensible defaults, so AgentConfig() gives a working setup.
    """

    llm: LLMConfig = Field(default_factory=LLMConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    rag: RagConfig = Field(default_factory=RagConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)


# ---------------------------------------------------------------------------
# Resolution helpers
# ---------------------------------------------------------------------------

def adaptive_chunk_size(documents: list[Document]) -> int:
    """
    Pick a chunk size from the mean document length.

    Long documents get bigger chunks so a passage still carries enough
    context; short ones get smaller chunks so retrieval stays precise.
    """
    if not documents:
        return MEDIUM_DOCUMENT_CHUNK_SIZE

    mean_length = sum(len(doc.page_content) for doc in documents) / len(documents)
    if mean_length > LONG_DOCUMENT_THRESHOLD:
        return LONG_DOCUMENT_CHUNK_SIZE
    if mean_length < SHORT_DOCUMENT_THRESHOLD:
        return SHORT_DOCUMENT_CHUNK_SIZE
    return MEDIUM_DOCUMENT_CHUNK_SIZE


def default_overlap(chunk_size: int) -> int:
    return int(round(chunk_size * DEFAULT_OVERLAP_RATIO))


def clamp_overlap(overlap: Optional[int], chunk_size: int) -> int:
    """Overlap must be smaller than chunk size, otherwise chunks would never advance."""
    if overlap is None or overlap < 0:
        return default_overlap(chunk_size)
    if overlap >= chunk_size:
        logger.warning(
            "chunk_overlap (%d) >= chunk_size (%d); using default overlap",
            overlap, chunk_size,
        )
        return default_overlap(chunk_size)
    return overlap


def _positive(value: Optional[int]) -> Optional[int]:
    if value is None or value <= 0:
        return None
    return value


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", name, raw)
        return None


def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number", name, raw)
        return None


def _env_strategy() -> Optional[RetrieverStrategy]:
    raw = os.getenv("RAG_RETRIEVER_STRATEGY")
    if not raw:
        return None
    try:
        return RetrieverStrategy(raw.strip().lower())
    except ValueError:
        logger.warning("Ignoring RAG_RETRIEVER_STRATEGY=%r: unknown strategy", raw)
        return None
