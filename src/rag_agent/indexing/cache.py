"""
Vector index cache.

Building an index (fetch → chunk → embed) is the slow path: seconds to
minutes for real pages. IndexCache keeps every index it builds for the
life of the process, keyed by what the index was built from:

    - the sorted, de-duplicated URL list
    - the sorted upload identifiers
    - the effective chunk size and overlap

Retriever settings are not part of the key; they only change how an
existing index is searched.

The cache is an ordinary object handed to the pipeline, not a module
global, so each test (or each service) can own an isolated instance.

Usage:
    from rag_agent.indexing.cache import IndexCache

    cache = IndexCache.create(EmbeddingConfig())
    index = await cache.get_or_create(Sources(urls=[url]), RagConfig())
    again = await cache.get_or_create(Sources(urls=[url]), RagConfig())
    assert index is again
"""

import asyncio
import json
import logging
from typing import Optional

from langchain_core.embeddings import Embeddings

from rag_agent.base.indexer import BaseSourceLoader
from rag_agent.config import EmbeddingConfig, RagConfig, TimeoutConfig
from rag_agent.indexing.chunking import chunk_documents
from rag_agent.indexing.embeddings import get_embedding_model
from rag_agent.indexing.loaders import WebSourceLoader
from rag_agent.indexing.vectorstore import VectorIndex
from rag_agent.models.document import Sources

logger = logging.getLogger(__name__)


def build_cache_key(sources: Sources, rag_config: Optional[RagConfig] = None) -> str:
    """
    Deterministic cache key for a source set + chunking configuration.

    Order of URLs or uploads never matters. The chunking part uses the
    effective values, so RagConfig(chunk_size=500) and RAG_CHUNK_SIZE=500
    share an entry.
    """
    rag_config = rag_config or RagConfig()
    chunk_size, chunk_overlap = rag_config.chunking_signature()
    return json.dumps(
        {
            "urls": sorted(set(sources.urls)),
            "uploads": sorted(set(sources.upload_ids())),
            "chunk_size": chunk_size,
            "chunk_overlap": chunk_overlap,
        },
        sort_keys=True,
        separators=(",", ":"),
    )


class IndexCache:
    """
    Process-lifetime map from cache key to built VectorIndex.

    Concurrent requests for the same key share one build: the first
    caller builds under a per-key lock, the others wait and then read
    the stored index. An index is stored only once its build has fully
    completed, so a cancelled or failed build leaves nothing behind.

    Entries are never evicted.
    """

    def __init__(
        self,
        embeddings: Embeddings,
        loader: Optional[BaseSourceLoader] = None,
        embedding_batch_size: int = 64,
        embedding_timeout: float = 60.0,
    ):
        self._embeddings = embeddings
        self._loader = loader if loader is not None else WebSourceLoader()
        self._batch_size = embedding_batch_size
        self._embedding_timeout = embedding_timeout
        self._entries: dict[str, VectorIndex] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self.build_count = 0

    @classmethod
    def create(
        cls,
        embedding_config: Optional[EmbeddingConfig] = None,
        loader: Optional[BaseSourceLoader] = None,
        timeouts: Optional[TimeoutConfig] = None,
    ) -> "IndexCache":
        """Build a cache with the configured embedding model and a web loader."""
        embedding_config = embedding_config or EmbeddingConfig()
        timeouts = timeouts or TimeoutConfig()
        return cls(
            embeddings=get_embedding_model(embedding_config),
            loader=loader if loader is not None else WebSourceLoader(timeout=timeouts.fetch_timeout),
            embedding_batch_size=embedding_config.batch_size,
            embedding_timeout=timeouts.embedding_timeout,
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[VectorIndex]:
        return self._entries.get(key)

    def is_cached(self, sources: Sources, rag_config: Optional[RagConfig] = None) -> bool:
        return build_cache_key(sources, rag_config) in self._entries

    async def get_or_create(
        self,
        sources: Sources,
        rag_config: Optional[RagConfig] = None,
    ) -> VectorIndex:
        """
        Return the cached index for these sources, building it if needed.

        Raises:
            FetchFailure: a URL could not be loaded.
            EmbeddingFailure: chunk embedding failed.
            PipelineTimeout: a fetch or embedding call ran past its deadline.
        """
        rag_config = rag_config or RagConfig()
        key = build_cache_key(sources, rag_config)

        index = self._entries.get(key)
        if index is not None:
            logger.info("Index cache hit (%d chunk(s))", len(index))
            return index

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            # Another caller may have finished the build while we waited.
            index = self._entries.get(key)
            if index is not None:
                logger.info("Index built by a concurrent request, reusing it")
                return index

            index = await self._build(sources, rag_config)
            self._entries[key] = index

        return index

    async def _build(self, sources: Sources, rag_config: RagConfig) -> VectorIndex:
        logger.info(
            "Building index for %d URL(s) and %d upload(s)",
            len(sources.urls), len(sources.uploaded_documents),
        )
        documents = []
        if sources.urls:
            documents.extend(await self._loader.fetch_all(sources.urls))
        documents.extend(sources.uploaded_documents)

        chunks, _ = chunk_documents(documents, rag_config)
        if not chunks:
            logger.warning("Sources produced no text; building an empty index")

        index = await VectorIndex.abuild(
            chunks,
            self._embeddings,
            batch_size=self._batch_size,
            timeout=self._embedding_timeout,
        )
        self.build_count += 1
        return index
