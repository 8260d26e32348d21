"""
Indexing pipeline: load → chunk → embed → index → cache.

Usage:
    from rag_agent.indexing import IndexCache, VectorIndex, chunk_documents
"""

from .cache import IndexCache, build_cache_key
from .chunking import RecursiveChunker, chunk_documents
from .embeddings import aembed_in_batches, get_embedding_model
from .loaders import UploadedFile, WebSourceLoader, decode_upload
from .vectorstore import VectorIndex

__all__ = [
    # Chunking
    "RecursiveChunker",
    "chunk_documents",
    # Embeddings
    "get_embedding_model",
    "aembed_in_batches",
    # Loading
    "WebSourceLoader",
    "UploadedFile",
    "decode_upload",
    # Index
    "VectorIndex",
    "IndexCache",
    "build_cache_key",
]
