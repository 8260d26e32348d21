"""
Abstract base classes for source loading and chunking.

Loading and chunking are separate steps so the source (web page,
uploaded PDF, plain text) can change without touching how text is split:
    loader = WebSourceLoader()
    chunker = RecursiveChunker(rag_config.resolve(documents))
    chunks = chunker.chunk(await loader.fetch("https://example.com"))
"""

import asyncio
from abc import ABC, abstractmethod

from langchain_core.documents import Document

from rag_agent.config import ResolvedRagConfig


class BaseSourceLoader(ABC):
    """
    Contract for source loaders.

    A loader takes a URL and returns LangChain Documents, usually one per
    page. It does NOT chunk. Loaders may fail per item; they raise
    FetchFailure with the offending source attached.
    """

    @abstractmethod
    async def fetch(self, url: str) -> list[Document]:
        """
        Load documents from a URL.

        Args:
            url: The web address to load.

        Returns:
            Documents with page_content and metadata["source"] populated.
        """
        ...

    async def fetch_all(self, urls: list[str]) -> list[Document]:
        """Fetch every URL concurrently; documents come back in URL order."""
        results = await asyncio.gather(*(self.fetch(url) for url in urls))
        return [doc for docs in results for doc in docs]


class BaseChunker(ABC):
    """
    Contract for document chunkers.

    A chunker takes loaded Documents and splits them into passages for
    embedding. It receives an already-resolved config, so chunk_size and
    chunk_overlap are concrete and overlap < size is guaranteed.
    """

    def __init__(self, config: ResolvedRagConfig):
        self.config = config

    @abstractmethod
    def chunk(self, documents: list[Document]) -> list[Document]:
        """
        Split documents into chunks.

        Args:
            documents: Raw documents from a loader or an upload.

        Returns:
            Smaller Documents, each with the source metadata preserved and
            chunk_index / doc_id added.
        """
        ...
