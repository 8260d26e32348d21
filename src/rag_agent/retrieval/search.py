"""
Vector index retrieval.

Two search policies over a built VectorIndex, each its own class so the
pipeline can swap them from configuration without touching other code:

    SimilarityRetriever  plain top-k by cosine similarity
    MMRRetriever         top-k from a fetch_k pool, balancing relevance
                         against redundancy between picked chunks

Usage:
    from rag_agent.retrieval.search import get_retriever

    retriever = get_retriever(index, RagConfig(retriever_strategy="mmr").resolve())
    result = await retriever.aretrieve("What is RAG?")
    # → RetrievalResult with retriever_k ScoredDocuments
"""

from typing import Optional

from rag_agent.base.retriever import BaseRetriever
from rag_agent.config import ResolvedRagConfig, RetrieverStrategy
from rag_agent.indexing.vectorstore import VectorIndex
from rag_agent.models.document import ScoredDocument
from rag_agent.models.result import RetrievalResult


class SimilarityRetriever(BaseRetriever):
    """
    Standard cosine similarity search.

    Embeds the query, returns the k nearest chunks ranked by similarity.
    Equal scores keep the order the chunks were indexed in.
    """

    def __init__(self, index: VectorIndex, k: int = 4):
        self._index = index
        self._k = k

    async def aretrieve(self, query: str, k: Optional[int] = None) -> RetrievalResult:
        k = k or self._k
        docs_and_scores = await self._index.asimilarity_search_with_score(query, k=k)

        documents = [
            ScoredDocument.from_document(doc, score=score, rank=rank)
            for rank, (doc, score) in enumerate(docs_and_scores)
        ]

        return RetrievalResult(
            documents=documents,
            query_used=query,
            strategy="similarity",
            total_candidates=len(self._index),
        )


class MMRRetriever(BaseRetriever):
    """
    Maximal Marginal Relevance (MMR) retrieval.

    Instead of the k most similar chunks (which may all repeat each
    other), MMR takes the fetch_k most similar and greedily picks chunks
    that are relevant AND different from those already picked:

        MMR = lambda * sim(chunk, query) - (1-lambda) * max sim(chunk, picked)

    lambda = 1.0 → pure relevance (same order as SimilarityRetriever)
    lambda = 0.5 → balanced (default)
    lambda = 0.0 → pure diversity after the first pick

    Scores on the returned documents are query similarity; rank is the
    MMR pick order.
    """

    def __init__(
        self,
        index: VectorIndex,
        k: int = 4,
        fetch_k: int = 20,
        lambda_mult: float = 0.5,
    ):
        self._index = index
        self._k = k
        self._fetch_k = max(fetch_k, k)
        self._lambda = lambda_mult

    async def aretrieve(self, query: str, k: Optional[int] = None) -> RetrievalResult:
        k = k or self._k
        fetch_k = max(self._fetch_k, k)

        docs_and_scores = await self._index.amax_marginal_relevance_search_with_score(
            query, k=k, fetch_k=fetch_k, lambda_mult=self._lambda,
        )

        documents = [
            ScoredDocument.from_document(doc, score=score, rank=rank)
            for rank, (doc, score) in enumerate(docs_and_scores)
        ]

        return RetrievalResult(
            documents=documents,
            query_used=query,
            strategy=f"mmr(lambda={self._lambda})",
            total_candidates=min(fetch_k, len(self._index)),
        )


def get_retriever(index: VectorIndex, config: ResolvedRagConfig) -> BaseRetriever:
    """
    Build the retriever a resolved config asks for.

    retriever_fetch_k and retriever_lambda only matter for MMR.
    """
    if config.retriever_strategy == RetrieverStrategy.MMR:
        return MMRRetriever(
            index,
            k=config.retriever_k,
            fetch_k=config.retriever_fetch_k,
            lambda_mult=config.retriever_lambda,
        )

    elif config.retriever_strategy == RetrieverStrategy.SIMILARITY:
        return SimilarityRetriever(index, k=config.retriever_k)

    else:
        raise ValueError(
            f"Unknown retriever strategy: '{config.retriever_strategy}'. "
            f"Supported: 'similarity', 'mmr'."
        )
