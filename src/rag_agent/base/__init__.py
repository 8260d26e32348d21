"""
Abstract base classes defining the contract for each RAG pipeline stage.

Import from here:
    from rag_agent.base import BaseRetriever, BaseGenerator, BaseModelGateway
"""

from .gateway import BaseModelGateway
from .generator import BaseGenerator
from .indexer import BaseChunker, BaseSourceLoader
from .retriever import BaseRetriever

__all__ = [
    "BaseSourceLoader",
    "BaseChunker",
    "BaseRetriever",
    "BaseGenerator",
    "BaseModelGateway",
]
