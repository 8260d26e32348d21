"""Tests for chunking: no API calls needed for the recursive chunker."""

from langchain_core.documents import Document

from rag_agent.config import RagConfig
from rag_agent.indexing.chunking import RecursiveChunker, chunk_documents


def _numbered_words(n):
    return " ".join(f"w{i}" for i in range(n))


def _shared_words(prev, nxt):
    """Longest run of words that ends prev and starts nxt."""
    prev_words, next_words = prev.split(), nxt.split()
    for k in range(min(len(prev_words), len(next_words)), 0, -1):
        if prev_words[-k:] == next_words[:k]:
            return " ".join(next_words[:k])
    return ""


def test_chunks_respect_size_and_overlap():
    """Each chunk fits chunk_size and starts with the tail of the previous one."""
    doc = Document(page_content=_numbered_words(200), metadata={"source": "https://a.example"})
    resolved = RagConfig(chunk_size=100, chunk_overlap=20).resolve()

    chunks = RecursiveChunker(resolved).chunk([doc])

    assert len(chunks) > 1
    for chunk in chunks:
        assert len(chunk.page_content) <= 100

    for prev, nxt in zip(chunks, chunks[1:]):
        shared = _shared_words(prev.page_content, nxt.page_content)
        assert shared, "consecutive chunks should overlap"
        assert prev.page_content.endswith(shared)
        assert nxt.page_content.startswith(shared)
        assert len(shared) <= 20


def test_no_text_is_lost():
    doc = Document(page_content=_numbered_words(200), metadata={})
    chunks = RecursiveChunker(RagConfig(chunk_size=100, chunk_overlap=20).resolve()).chunk([doc])

    seen = {word for chunk in chunks for word in chunk.page_content.split()}
    assert seen == set(doc.page_content.split())


def test_metadata_is_inherited_with_chunk_index():
    doc = Document(page_content=_numbered_words(100), metadata={"source": "https://a.example"})
    chunks = RecursiveChunker(RagConfig(chunk_size=80, chunk_overlap=10).resolve()).chunk([doc])

    assert [c.metadata["chunk_index"] for c in chunks] == list(range(len(chunks)))
    for chunk in chunks:
        assert chunk.metadata["source"] == "https://a.example"
        assert chunk.metadata["doc_id"] == "https://a.example"


def test_upload_id_is_the_doc_id():
    doc = Document(page_content="short note", metadata={"source": "notes.md", "upload_id": "up-1"})
    chunks = RecursiveChunker(RagConfig(chunk_size=100).resolve()).chunk([doc])
    assert chunks[0].metadata["doc_id"] == "up-1"


def test_input_documents_not_modified():
    doc = Document(page_content="a\tb " * 50, metadata={"source": "x"})
    RecursiveChunker(RagConfig(chunk_size=50).resolve()).chunk([doc])
    assert "\t" in doc.page_content
    assert "chunk_index" not in doc.metadata


def test_tabs_become_spaces():
    doc = Document(page_content="col1\tcol2\tcol3", metadata={})
    chunks = RecursiveChunker(RagConfig(chunk_size=100).resolve()).chunk([doc])
    assert chunks[0].page_content == "col1 col2 col3"


def test_sentences_keep_their_full_stop():
    text = "First sentence here. Second sentence here. Third sentence here."
    doc = Document(page_content=text, metadata={})
    chunks = RecursiveChunker(RagConfig(chunk_size=25, chunk_overlap=0).resolve()).chunk([doc])
    assert chunks[0].page_content == "First sentence here."


def test_chunk_documents_uses_adaptive_size():
    docs = [Document(page_content="word " * 1600, metadata={})]  # 8000 chars
    chunks, resolved = chunk_documents(docs, RagConfig())

    assert resolved.chunk_size == 900
    assert resolved.chunk_overlap == 180
    assert all(len(c.page_content) <= 900 for c in chunks)


def test_chunk_documents_empty():
    chunks, resolved = chunk_documents([], RagConfig())
    assert chunks == []
    assert resolved.chunk_size == 700
