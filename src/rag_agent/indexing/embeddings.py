"""
Embedding model factory and batched embedding.

get_embedding_model maps EmbeddingConfig.provider to a LangChain class and
hands it the configured batch size, so a provider's own request batching
matches the batches aembed_in_batches sends:

    "openai"      → OpenAIEmbeddings, batch size as chunk_size (default)
    "huggingface" → HuggingFaceEmbeddings, batch size in encode_kwargs
    "cohere"      → CohereEmbeddings

Usage:
    from rag_agent.indexing.embeddings import get_embedding_model
    from rag_agent.config import EmbeddingConfig

    model = get_embedding_model(EmbeddingConfig(
        provider="huggingface",
        model_name="sentence-transformers/all-MiniLM-L6-v2",
        batch_size=32,
    ))
"""

import asyncio
import logging
from importlib import import_module

from langchain_core.embeddings import Embeddings

from rag_agent.config import EmbeddingConfig
from rag_agent.errors import EmbeddingFailure, PipelineTimeout
from rag_agent.utils.helpers import run_with_timeout

logger = logging.getLogger(__name__)


def _import_class(module: str, name: str, extra: str):
    """Import an optional provider class, pointing at the install extra if missing."""
    try:
        return getattr(import_module(module), name)
    except ImportError:
        raise ImportError(
            f"{name} requires {module.replace('_', '-')}. "
            f"Install with: pip install rag-agent[{extra}]"
        )


def _openai(config: EmbeddingConfig) -> Embeddings:
    from langchain_openai import OpenAIEmbeddings

    kwargs = {"chunk_size": config.batch_size, **config.model_kwargs}
    return OpenAIEmbeddings(model=config.model_name, **kwargs)


def _huggingface(config: EmbeddingConfig) -> Embeddings:
    cls = _import_class("langchain_huggingface", "HuggingFaceEmbeddings", "huggingface")
    return cls(
        model_name=config.model_name,
        model_kwargs=config.model_kwargs,
        encode_kwargs={"batch_size": config.batch_size},
    )


def _cohere(config: EmbeddingConfig) -> Embeddings:
    cls = _import_class("langchain_cohere", "CohereEmbeddings", "cohere")
    return cls(model=config.model_name, **config.model_kwargs)


_PROVIDERS = {
    "openai": _openai,
    "huggingface": _huggingface,
    "cohere": _cohere,
}


def get_embedding_model(config: EmbeddingConfig) -> Embeddings:
    """
    Return the LangChain embedding model for config.

    Provider packages are imported lazily so only the one in use has to
    be installed.

    Raises:
        ValueError: If the provider is not recognized.
        ImportError: If the provider's package is not installed.
    """
    builder = _PROVIDERS.get(config.provider.lower())
    if builder is None:
        raise ValueError(
            f"Unknown embedding provider: '{config.provider}'. "
            f"Supported: {', '.join(repr(name) for name in _PROVIDERS)}. "
            f"For other providers, pass a LangChain Embeddings instance to IndexCache."
        )
    logger.debug("Embedding model %s/%s", config.provider, config.model_name)
    return builder(config)


async def aembed_in_batches(
    embeddings: Embeddings,
    texts: list[str],
    batch_size: int,
    timeout: float,
) -> list[list[float]]:
    """
    Embed texts in concurrent batches, keeping input order.

    Every batch runs under the same deadline. Any batch failing (or
    timing out) fails the whole call with EmbeddingFailure / PipelineTimeout,
    so a caller never ends up with vectors for only some of the texts.
    """
    batches = [texts[i:i + batch_size] for i in range(0, len(texts), batch_size)]
    logger.debug("Embedding %d text(s) in %d batch(es)", len(texts), len(batches))

    async def _embed(batch: list[str]) -> list[list[float]]:
        vectors = await run_with_timeout(
            embeddings.aembed_documents(batch), timeout, stage="embed_chunks",
        )
        if len(vectors) != len(batch):
            raise EmbeddingFailure(
                f"Embedder returned {len(vectors)} vector(s) for {len(batch)} text(s)",
                stage="embed_chunks",
            )
        return vectors

    try:
        results = await asyncio.gather(*(_embed(batch) for batch in batches))
    except (EmbeddingFailure, PipelineTimeout):
        raise
    except Exception as exc:
        raise EmbeddingFailure(
            "Failed to embed document chunks", stage="embed_chunks", cause=exc,
        ) from exc

    return [vector for batch_vectors in results for vector in batch_vectors]
