"""
Document models for the RAG pipeline.

These represent data at each stage:
  Source document (loaded) → Chunk (split) → ScoredDocument (retrieved + scored)

Loaded documents and the chunks stored in the vector index stay LangChain
Documents; once retrieved, they become these typed models.
"""

import hashlib
from typing import Literal, Optional

from langchain_core.documents import Document
from pydantic import BaseModel, ConfigDict, Field


class ChunkMetadata(BaseModel):
    """
    Metadata attached to every chunk.

    Travels with the chunk from indexing to retrieval to generation, so
    downstream code can trust which fields exist.
    """

    model_config = ConfigDict(frozen=True)

    source: str = Field(default="", description="URL or uploaded file name")
    chunk_index: int = Field(default=0, description="Position of this chunk in its source document")
    doc_id: str = Field(default="", description="Parent document identifier (URL or upload id)")
    file_name: Optional[str] = Field(default=None, description="Uploaded file name, if any")
    mime_type: Optional[str] = Field(default=None, description="MIME type of the source")

    @classmethod
    def from_document(cls, doc: Document, fallback_index: int = 0) -> "ChunkMetadata":
        meta = doc.metadata
        return cls(
            source=str(meta.get("source", "")),
            chunk_index=meta.get("chunk_index", fallback_index),
            doc_id=str(meta.get("doc_id", "")),
            file_name=meta.get("file_name"),
            mime_type=meta.get("mime_type"),
        )


class Chunk(BaseModel):
    """
    A contiguous slice of a source document.

    Chunks are never mutated; a different chunking configuration produces
    a different set of chunks (and a different index).
    """

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="The actual text content")
    metadata: ChunkMetadata = Field(default_factory=ChunkMetadata)


class ScoredDocument(BaseModel):
    """
    A chunk with a relevance score attached.

    This is what the retrieval stage returns. rank is the position in the
    retriever's output and is what the grading fallback orders by.
    """

    chunk: Chunk
    score: float = Field(default=0.0, description="Similarity to the query (higher = more relevant)")
    rank: int = Field(default=0, description="Position in the retrieval result")

    @classmethod
    def from_document(cls, doc: Document, score: float, rank: int) -> "ScoredDocument":
        return cls(
            chunk=Chunk(
                content=doc.page_content,
                metadata=ChunkMetadata.from_document(doc, fallback_index=rank),
            ),
            score=score,
            rank=rank,
        )


class Turn(BaseModel):
    """One message of a conversation, oldest first in any history list."""

    role: Literal["user", "assistant"]
    content: str


class Sources(BaseModel):
    """
    What a question is asked against.

    urls are fetched by the source loader; uploaded_documents arrive
    already decoded (see indexing/loaders.decode_upload).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    urls: list[str] = Field(default_factory=list)
    uploaded_documents: list[Document] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.urls and not self.uploaded_documents

    def upload_ids(self) -> list[str]:
        return [upload_identifier(doc) for doc in self.uploaded_documents]


def upload_identifier(doc: Document) -> str:
    """
    Identity of an uploaded document.

    Uses the upload id assigned at decode time when present, otherwise
    the SHA-256 of the content, so identical uploads share a cache entry.
    """
    upload_id = doc.metadata.get("upload_id")
    if upload_id:
        return str(upload_id)
    return hashlib.sha256(doc.page_content.encode("utf-8")).hexdigest()
