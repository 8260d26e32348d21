"""
Retrieval components: similarity and MMR search over a vector index.

Usage:
    from rag_agent.retrieval import get_retriever, SimilarityRetriever, MMRRetriever
"""

from .search import MMRRetriever, SimilarityRetriever, get_retriever

__all__ = [
    "SimilarityRetriever",
    "MMRRetriever",
    "get_retriever",
]
