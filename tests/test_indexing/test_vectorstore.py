"""Tests for VectorIndex: real numpy math over hand-made vectors."""

import asyncio

import pytest
from langchain_core.documents import Document

from rag_agent.errors import EmbeddingFailure
from rag_agent.indexing.vectorstore import VectorIndex

from conftest import FailingEmbeddings, KeywordEmbeddings


def _index(vectors):
    docs = [Document(page_content=f"doc {i}", metadata={"i": i}) for i in range(len(vectors))]
    return VectorIndex(KeywordEmbeddings(), docs, vectors)


def _ids(docs_and_scores):
    return [doc.metadata["i"] for doc, _ in docs_and_scores]


class TestSimilaritySearch:

    def test_orders_by_cosine_similarity(self):
        index = _index([[0.0, 1.0], [1.0, 0.0], [0.7, 0.7]])
        results = index.similarity_search_with_score_by_vector([1.0, 0.1], k=3)

        assert _ids(results) == [1, 2, 0]
        scores = [score for _, score in results]
        assert scores == sorted(scores, reverse=True)
        assert scores[0] == pytest.approx(0.995, abs=1e-3)

    def test_ties_keep_insertion_order(self):
        index = _index([[1.0, 0.0], [0.0, 1.0], [1.0, 0.0], [2.0, 0.0]])
        results = index.similarity_search_with_score_by_vector([1.0, 0.0], k=3)
        assert _ids(results) == [0, 2, 3]

    def test_k_larger_than_index(self):
        index = _index([[1.0, 0.0], [0.0, 1.0]])
        assert len(index.similarity_search_with_score_by_vector([1.0, 0.0], k=10)) == 2

    def test_empty_index(self):
        index = VectorIndex(KeywordEmbeddings(), [], [])
        assert len(index) == 0
        assert index.similarity_search_with_score_by_vector([1.0, 0.0], k=4) == []
        assert index.max_marginal_relevance_search_with_score_by_vector([1.0, 0.0], k=4) == []


class TestMaximalMarginalRelevance:

    def test_lambda_one_matches_similarity(self):
        vectors = [[1.0, 0.0, 0.0], [0.9, 0.1, 0.0], [0.5, 0.5, 0.1], [0.0, 1.0, 0.0], [0.2, 0.1, 0.9]]
        index = _index(vectors)
        query = [1.0, 0.2, 0.1]

        similar = index.similarity_search_with_score_by_vector(query, k=4)
        mmr = index.max_marginal_relevance_search_with_score_by_vector(
            query, k=4, fetch_k=5, lambda_mult=1.0,
        )
        assert _ids(mmr) == _ids(similar)

    def test_first_pick_is_most_relevant(self):
        index = _index([[0.0, 1.0], [1.0, 0.0], [0.7, 0.7]])
        mmr = index.max_marginal_relevance_search_with_score_by_vector(
            [1.0, 0.1], k=2, fetch_k=3, lambda_mult=0.0,
        )
        assert _ids(mmr)[0] == 1

    def test_skips_near_duplicates(self):
        # 0 and 1 are almost the same; 2 is less relevant but different
        index = _index([[1.0, 0.0], [1.0, -0.05], [0.6, 0.8]])
        query = [1.0, 0.2]

        assert _ids(index.similarity_search_with_score_by_vector(query, k=2)) == [0, 1]
        mmr = index.max_marginal_relevance_search_with_score_by_vector(
            query, k=2, fetch_k=3, lambda_mult=0.5,
        )
        assert _ids(mmr) == [0, 2]

    def test_scores_are_query_relevance(self):
        index = _index([[1.0, 0.0], [1.0, -0.05], [0.6, 0.8]])
        relevance = dict(
            (doc.metadata["i"], score)
            for doc, score in index.similarity_search_with_score_by_vector([1.0, 0.2], k=3)
        )
        mmr = index.max_marginal_relevance_search_with_score_by_vector(
            [1.0, 0.2], k=2, fetch_k=3, lambda_mult=0.5,
        )
        for doc, score in mmr:
            assert score == pytest.approx(relevance[doc.metadata["i"]])

    def test_candidates_limited_to_fetch_k(self):
        index = _index([[1.0, 0.0], [0.99, 0.01], [0.0, 1.0]])
        mmr = index.max_marginal_relevance_search_with_score_by_vector(
            [1.0, 0.0], k=2, fetch_k=2, lambda_mult=0.0,
        )
        assert sorted(_ids(mmr)) == [0, 1]


class TestBuild:

    def test_abuild_embeds_every_chunk(self):
        chunks = [Document(page_content=f"paris tower {i}", metadata={}) for i in range(5)]
        embeddings = KeywordEmbeddings()

        index = asyncio.run(VectorIndex.abuild(chunks, embeddings, batch_size=2))

        assert len(index) == 5
        assert embeddings.document_calls == 3
        assert [d.page_content for d in index.documents] == [c.page_content for c in chunks]

    def test_abuild_failure_raises_embedding_failure(self):
        chunks = [Document(page_content="text", metadata={})]
        with pytest.raises(EmbeddingFailure):
            asyncio.run(VectorIndex.abuild(chunks, FailingEmbeddings()))

    def test_from_texts(self):
        index = VectorIndex.from_texts(
            ["The Eiffel Tower is in Paris", "Python is a language"],
            KeywordEmbeddings(),
            metadatas=[{"source": "a"}, {"source": "b"}],
        )
        results = index.similarity_search("eiffel tower", k=1)
        assert results[0].metadata["source"] == "a"

    def test_vector_count_must_match(self):
        with pytest.raises(ValueError):
            VectorIndex(KeywordEmbeddings(), [Document(page_content="a")], [])

    def test_index_is_read_only(self):
        index = _index([[1.0, 0.0]])
        with pytest.raises(NotImplementedError):
            index.add_texts(["more"])


class TestAsyncSearch:

    def test_async_similarity_search(self):
        index = VectorIndex.from_texts(
            ["Python is a programming language", "The Pacific Ocean has fish"],
            KeywordEmbeddings(),
        )
        docs = asyncio.run(index.asimilarity_search("ocean fish", k=1))
        assert docs[0].page_content == "The Pacific Ocean has fish"

    def test_query_embedding_failure(self):
        index = VectorIndex(FailingEmbeddings(), [Document(page_content="a")], [[1.0]])
        with pytest.raises(EmbeddingFailure):
            asyncio.run(index.asimilarity_search_with_score("anything"))
