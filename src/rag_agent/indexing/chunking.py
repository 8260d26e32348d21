"""
Document chunking.

Takes loaded Documents and splits them into overlapping passages for
embedding. Sizes come from a ResolvedRagConfig; when the caller did not
pin a chunk size, RagConfig.resolve() picks one from the mean document
length (short pages → small chunks, long reports → large chunks).

Usage:
    from rag_agent.indexing.chunking import chunk_documents
    from rag_agent.config import RagConfig

    chunks, resolved = chunk_documents(documents, RagConfig())
    # resolved.chunk_size is 400, 700 or 900 depending on the documents
"""

import logging

from langchain_core.documents import Document
from langchain_text_splitters import RecursiveCharacterTextSplitter

from rag_agent.base.indexer import BaseChunker
from rag_agent.config import RagConfig, ResolvedRagConfig
from rag_agent.utils.helpers import replace_t_with_space

logger = logging.getLogger(__name__)

# Tried in order: paragraphs → lines → sentences → words → characters.
# A harder separator is only used on pieces still larger than chunk_size.
SEPARATORS = ["\n\n", "\n", ". ", "! ", "? ", " ", ""]


class RecursiveChunker(BaseChunker):
    """
    Splits text using a hierarchy of separators.

    RecursiveCharacterTextSplitter merges small pieces up to chunk_size
    and carries the trailing pieces of one chunk over as the literal
    start of the next, so nothing is lost at a boundary.

    Separators stay at the end of the piece they close ("end"), so
    sentences keep their full stop and the next chunk starts on a word.
    """

    def __init__(self, config: ResolvedRagConfig):
        super().__init__(config)
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=config.chunk_size,
            chunk_overlap=config.chunk_overlap,
            length_function=len,
            separators=SEPARATORS,
            keep_separator="end",
        )

    def chunk(self, documents: list[Document]) -> list[Document]:
        """
        Split documents into chunks.

        The input documents are not modified. Each chunk inherits its
        document's metadata, with chunk_index (position within that
        document) and doc_id added.
        """
        chunks: list[Document] = []
        for doc in documents:
            doc_id = doc.metadata.get("upload_id") or doc.metadata.get("source", "")
            pieces = self._splitter.split_text(doc.page_content)
            for index, text in enumerate(pieces):
                metadata = dict(doc.metadata)
                metadata["chunk_index"] = index
                metadata["doc_id"] = str(doc_id)
                chunks.append(Document(page_content=text, metadata=metadata))

        return replace_t_with_space(chunks)


def chunk_documents(
    documents: list[Document],
    rag_config: RagConfig,
) -> tuple[list[Document], ResolvedRagConfig]:
    """
    Resolve the config against the documents, then chunk them.

    Returns both the chunks and the resolved config so the caller can
    record which sizes were actually used.
    """
    resolved = rag_config.resolve(documents)
    chunks = RecursiveChunker(resolved).chunk(documents)
    logger.info(
        "Chunked %d document(s) into %d chunk(s) (chunk_size=%d, chunk_overlap=%d)",
        len(documents), len(chunks), resolved.chunk_size, resolved.chunk_overlap,
    )
    return chunks, resolved
