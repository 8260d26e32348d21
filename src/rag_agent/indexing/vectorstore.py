"""
In-memory vector index.

VectorIndex is a LangChain VectorStore that is built once and never
changes afterwards: it holds the embedding model plus an ordered list of
(vector, chunk) pairs and answers nearest-neighbour queries by cosine
similarity. Being read-only, one index can serve any number of
concurrent searches.

Two search policies:
    similarity_search_with_score()   top-k by cosine similarity, ties go to
                                     the chunk that was indexed first
    max_marginal_relevance_search()  top-fetch_k candidates, then a greedy
                                     relevance/diversity trade-off (MMR)

Usage:
    from rag_agent.indexing.vectorstore import VectorIndex

    index = await VectorIndex.abuild(chunks, embeddings)
    docs_and_scores = await index.asimilarity_search_with_score("what is RAG?", k=4)
"""

import logging
from typing import Any, Iterable, Optional

import numpy as np
from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings
from langchain_core.vectorstores import VectorStore

from rag_agent.errors import EmbeddingFailure, PipelineTimeout
from rag_agent.indexing.embeddings import aembed_in_batches
from rag_agent.utils.helpers import run_with_timeout

logger = logging.getLogger(__name__)


class VectorIndex(VectorStore):
    """
    Immutable in-memory index of chunk embeddings.

    Vectors are L2-normalised at build time, so cosine similarity is a
    single matrix-vector product at query time. add_texts() is refused:
    a different document set means a different index.
    """

    def __init__(
        self,
        embedding: Embeddings,
        documents: list[Document],
        vectors: list[list[float]],
        query_timeout: float = 60.0,
    ):
        if len(documents) != len(vectors):
            raise ValueError(
                f"Got {len(vectors)} vector(s) for {len(documents)} document(s)"
            )
        self._embedding = embedding
        self._documents = tuple(documents)
        self._query_timeout = query_timeout

        matrix = np.asarray(vectors, dtype=float)
        if matrix.size:
            norms = np.linalg.norm(matrix, axis=1, keepdims=True)
            norms[norms == 0] = 1.0
            matrix = matrix / norms
        matrix.setflags(write=False)
        self._matrix = matrix

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    async def abuild(
        cls,
        chunks: list[Document],
        embedding: Embeddings,
        batch_size: int = 64,
        timeout: float = 60.0,
    ) -> "VectorIndex":
        """
        Embed every chunk and return the finished index.

        Batches are embedded concurrently. If any batch fails the whole
        build fails; there is no partially populated index.
        """
        texts = [chunk.page_content for chunk in chunks]
        vectors = await aembed_in_batches(embedding, texts, batch_size, timeout)
        logger.info("Built vector index with %d chunk(s)", len(chunks))
        return cls(embedding, list(chunks), vectors, query_timeout=timeout)

    @classmethod
    def from_texts(
        cls,
        texts: list[str],
        embedding: Embeddings,
        metadatas: Optional[list[dict]] = None,
        **kwargs: Any,
    ) -> "VectorIndex":
        """Synchronous build, for scripts and LangChain interop."""
        metadatas = metadatas or [{} for _ in texts]
        documents = [
            Document(page_content=text, metadata=dict(meta))
            for text, meta in zip(texts, metadatas)
        ]
        try:
            vectors = embedding.embed_documents(list(texts))
        except Exception as exc:
            raise EmbeddingFailure(
                "Failed to embed document chunks", stage="embed_chunks", cause=exc,
            ) from exc
        return cls(embedding, documents, vectors, **kwargs)

    def add_texts(
        self,
        texts: Iterable[str],
        metadatas: Optional[list[dict]] = None,
        **kwargs: Any,
    ) -> list[str]:
        raise NotImplementedError(
            "VectorIndex is read-only once built. Build a new index instead."
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def embeddings(self) -> Embeddings:
        return self._embedding

    @property
    def documents(self) -> tuple[Document, ...]:
        return self._documents

    def __len__(self) -> int:
        return len(self._documents)

    # ------------------------------------------------------------------
    # Similarity search
    # ------------------------------------------------------------------

    def _scores(self, query_vector: list[float]) -> np.ndarray:
        query = np.asarray(query_vector, dtype=float)
        norm = np.linalg.norm(query)
        if norm:
            query = query / norm
        return self._matrix @ query

    @staticmethod
    def _ranked(scores: np.ndarray, limit: int) -> np.ndarray:
        # Stable sort: equal scores keep insertion order.
        return np.argsort(-scores, kind="stable")[:limit]

    def similarity_search_with_score_by_vector(
        self,
        embedding: list[float],
        k: int = 4,
    ) -> list[tuple[Document, float]]:
        if not self._documents or k <= 0:
            return []
        scores = self._scores(embedding)
        return [(self._documents[i], float(scores[i])) for i in self._ranked(scores, k)]

    def similarity_search_with_score(
        self, query: str, k: int = 4, **kwargs: Any,
    ) -> list[tuple[Document, float]]:
        return self.similarity_search_with_score_by_vector(self._embedding.embed_query(query), k)

    def similarity_search(self, query: str, k: int = 4, **kwargs: Any) -> list[Document]:
        return [doc for doc, _ in self.similarity_search_with_score(query, k)]

    async def asimilarity_search_with_score(
        self, query: str, k: int = 4, **kwargs: Any,
    ) -> list[tuple[Document, float]]:
        vector = await self._aembed_query(query)
        return self.similarity_search_with_score_by_vector(vector, k)

    async def asimilarity_search(self, query: str, k: int = 4, **kwargs: Any) -> list[Document]:
        return [doc for doc, _ in await self.asimilarity_search_with_score(query, k)]

    # ------------------------------------------------------------------
    # Maximal marginal relevance
    # ------------------------------------------------------------------

    def max_marginal_relevance_search_with_score_by_vector(
        self,
        embedding: list[float],
        k: int = 4,
        fetch_k: int = 20,
        lambda_mult: float = 0.5,
    ) -> list[tuple[Document, float]]:
        """
        MMR over the fetch_k nearest chunks.

        Each step picks the candidate maximising
            lambda * relevance - (1 - lambda) * max_similarity(candidate, selected)
        The first pick is the most relevant candidate. lambda = 1 gives
        plain top-k; lambda = 0 only cares about diversity after the first.

        Scores returned are query relevance, not the MMR objective.
        """
        if not self._documents or k <= 0:
            return []

        scores = self._scores(embedding)
        candidates = self._ranked(scores, max(fetch_k, k))
        relevance = scores[candidates]
        vectors = self._matrix[candidates]
        pairwise = vectors @ vectors.T

        selected = [0]
        remaining = list(range(1, len(candidates)))
        while remaining and len(selected) < k:
            best_pos = remaining[0]
            best_score = -float("inf")
            for pos in remaining:
                redundancy = pairwise[pos, selected].max()
                mmr_score = lambda_mult * relevance[pos] - (1 - lambda_mult) * redundancy
                if mmr_score > best_score:
                    best_score = mmr_score
                    best_pos = pos
            selected.append(best_pos)
            remaining.remove(best_pos)

        return [(self._documents[candidates[p]], float(relevance[p])) for p in selected]

    def max_marginal_relevance_search_by_vector(
        self,
        embedding: list[float],
        k: int = 4,
        fetch_k: int = 20,
        lambda_mult: float = 0.5,
        **kwargs: Any,
    ) -> list[Document]:
        return [
            doc for doc, _ in self.max_marginal_relevance_search_with_score_by_vector(
                embedding, k, fetch_k, lambda_mult,
            )
        ]

    def max_marginal_relevance_search(
        self,
        query: str,
        k: int = 4,
        fetch_k: int = 20,
        lambda_mult: float = 0.5,
        **kwargs: Any,
    ) -> list[Document]:
        return self.max_marginal_relevance_search_by_vector(
            self._embedding.embed_query(query), k, fetch_k, lambda_mult,
        )

    async def amax_marginal_relevance_search_with_score(
        self,
        query: str,
        k: int = 4,
        fetch_k: int = 20,
        lambda_mult: float = 0.5,
    ) -> list[tuple[Document, float]]:
        vector = await self._aembed_query(query)
        return self.max_marginal_relevance_search_with_score_by_vector(
            vector, k, fetch_k, lambda_mult,
        )

    async def amax_marginal_relevance_search(
        self,
        query: str,
        k: int = 4,
        fetch_k: int = 20,
        lambda_mult: float = 0.5,
        **kwargs: Any,
    ) -> list[Document]:
        return [
            doc for doc, _ in await self.amax_marginal_relevance_search_with_score(
                query, k, fetch_k, lambda_mult,
            )
        ]

    # ------------------------------------------------------------------

    async def _aembed_query(self, query: str) -> list[float]:
        try:
            return await run_with_timeout(
                self._embedding.aembed_query(query), self._query_timeout, stage="embed_query",
            )
        except PipelineTimeout:
            raise
        except Exception as exc:
            raise EmbeddingFailure(
                "Failed to embed the question", stage="embed_query", cause=exc,
            ) from exc
