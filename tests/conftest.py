"""
Shared test fixtures for the rag-agent test suite.

Provides fakes for everything that would otherwise hit the network:
a keyword-count embedding model, a scripted model gateway and an
in-memory source loader.
"""

import asyncio
import threading

import pytest
from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings

from rag_agent.base.gateway import BaseModelGateway
from rag_agent.base.indexer import BaseSourceLoader
from rag_agent.errors import FetchFailure
from rag_agent.indexing.cache import IndexCache
from rag_agent.models.document import Chunk, ChunkMetadata, ScoredDocument


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

VOCABULARY = [
    "eiffel", "tower", "paris", "france",
    "python", "programming", "language",
    "ocean", "pacific", "fish", "water",
    "rag", "retrieval", "generation",
]


class KeywordEmbeddings(Embeddings):
    """
    Bag-of-keywords embeddings: one dimension per VOCABULARY word.

    Texts sharing keywords with the query score higher, which is enough
    to make retrieval order predictable in tests.
    """

    def __init__(self):
        self.document_calls = 0
        self.query_calls = 0
        self._lock = threading.Lock()

    def _vector(self, text: str) -> list[float]:
        words = [w.strip(".,?!'\"") for w in text.lower().split()]
        return [float(words.count(term)) for term in VOCABULARY]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        with self._lock:
            self.document_calls += 1
        return [self._vector(text) for text in texts]

    def embed_query(self, text: str) -> list[float]:
        with self._lock:
            self.query_calls += 1
        return self._vector(text)


class FailingEmbeddings(Embeddings):
    def embed_documents(self, texts):
        raise RuntimeError("embedding service down")

    def embed_query(self, text):
        raise RuntimeError("embedding service down")


DOCUMENT_GRADER_MARKER = "deciding if a document is relevant"
ANSWER_GRADER_MARKER = "deciding if a generated answer is relevant"


class FakeGateway(BaseModelGateway):
    """
    Scripted model gateway.

    Routes each prompt to one of three handlers by recognising the
    grader prompts. A handler is a string reply, a callable taking the
    prompt, or an exception instance to raise. Every prompt is recorded
    per handler in `calls`.
    """

    model_name = "fake/model"

    def __init__(self, grade_document="yes", answer="An answer.", grade_answer="yes", delay=0.0):
        self._handlers = {
            "grade_document": grade_document,
            "answer": answer,
            "grade_answer": grade_answer,
        }
        self._delay = delay
        self.calls = {name: [] for name in self._handlers}
        self.in_flight = 0
        self.max_in_flight = 0

    async def complete(self, prompt: str) -> str:
        if DOCUMENT_GRADER_MARKER in prompt:
            name = "grade_document"
        elif ANSWER_GRADER_MARKER in prompt:
            name = "grade_answer"
        else:
            name = "answer"
        self.calls[name].append(prompt)

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
            handler = self._handlers[name]
            if isinstance(handler, Exception):
                raise handler
            if callable(handler):
                return handler(prompt)
            return handler
        finally:
            self.in_flight -= 1


def document_text(prompt: str) -> str:
    """The document part of a document-grading prompt."""
    return prompt.split("Document:", 1)[1].split("If the document", 1)[0]


class FakeLoader(BaseSourceLoader):
    """Serves pages from a dict; unknown URLs fail like a 404 would."""

    def __init__(self, pages: dict[str, str]):
        self._pages = pages
        self.fetched: list[str] = []

    async def fetch(self, url: str) -> list[Document]:
        self.fetched.append(url)
        await asyncio.sleep(0)
        if url not in self._pages:
            raise FetchFailure(f"Could not load {url}", source=url, stage="fetch_sources")
        return [Document(page_content=self._pages[url], metadata={"source": url})]


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

EIFFEL_URL = "https://example.com/eiffel"
EIFFEL_PAGE = (
    "The Eiffel Tower is a wrought-iron lattice tower on the Champ de Mars in "
    "Paris, France. It was completed in 1889 for the World's Fair.\n\n"
    "Python is a high-level programming language. Its design philosophy "
    "emphasizes code readability with significant indentation.\n\n"
    "The Pacific Ocean is the largest and deepest of the oceanic divisions. "
    "Many species of fish live in its water."
)
OTHER_URL = "https://example.com/other"
OTHER_PAGE = "RAG combines retrieval with generation."


@pytest.fixture(autouse=True)
def clean_rag_env(monkeypatch):
    """Keep a developer's .env out of config resolution."""
    for name in (
        "RAG_CHUNK_SIZE", "RAG_CHUNK_OVERLAP", "RAG_RETRIEVER_STRATEGY",
        "RAG_RETRIEVER_K", "RAG_RETRIEVER_FETCH_K", "RAG_RETRIEVER_LAMBDA",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def keyword_embeddings():
    return KeywordEmbeddings()


@pytest.fixture
def fake_loader():
    return FakeLoader({EIFFEL_URL: EIFFEL_PAGE, OTHER_URL: OTHER_PAGE})


@pytest.fixture
def index_cache(keyword_embeddings, fake_loader):
    return IndexCache(keyword_embeddings, loader=fake_loader)


@pytest.fixture
def sample_documents():
    """Sample LangChain Documents for chunkers and indexes."""
    return [
        Document(page_content="RAG stands for Retrieval-Augmented Generation.", metadata={"source": "https://a.example"}),
        Document(page_content="The Eiffel Tower is in Paris.", metadata={"source": "https://b.example"}),
        Document(page_content="Python is a programming language.", metadata={"source": "https://c.example"}),
    ]


def make_scored_documents(n=5, source="https://example.com"):
    return [
        ScoredDocument(
            chunk=Chunk(
                content=f"Document content {i}",
                metadata=ChunkMetadata(source=source, chunk_index=i),
            ),
            score=0.9 - i * 0.1,
            rank=i,
        )
        for i in range(n)
    ]


@pytest.fixture
def scored_documents():
    return make_scored_documents()
