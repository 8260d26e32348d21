"""Tests for the document and answer graders: scripted gateway, no API calls."""

import asyncio

import pytest

from rag_agent.config import GradingPolicy
from rag_agent.errors import ClassificationFailure
from rag_agent.generation.grading import (
    LENIENT_DISCLAIMER,
    NO_ANSWER_MESSAGE,
    STRICT_REPLACEMENT,
    AnswerGrader,
    DocumentGrader,
    parse_relevance_verdict,
)

from conftest import FakeGateway, document_text, make_scored_documents


class TestParseRelevanceVerdict:

    @pytest.mark.parametrize("text", ["yes", "Yes.", "YES", "'yes'", "relevant", "True"])
    def test_positive(self, text):
        assert parse_relevance_verdict(text).relevant is True

    @pytest.mark.parametrize("text", ["no", "No.", "'no'", "not relevant", "Irrelevant", "false"])
    def test_negative(self, text):
        assert parse_relevance_verdict(text).relevant is False

    def test_verdict_later_in_text(self):
        assert parse_relevance_verdict("The answer is yes").relevant is True
        assert parse_relevance_verdict("I would say no").relevant is False

    @pytest.mark.parametrize(
        "text", ["", "   ", "maybe", "it could be yes or no", "Not sure, it depends on the question."],
    )
    def test_ambiguous_raises(self, text):
        with pytest.raises(ClassificationFailure):
            parse_relevance_verdict(text)

    def test_leading_not_needs_relevant(self):
        assert parse_relevance_verdict("Not relevant at all.").relevant is False
        assert parse_relevance_verdict("Not sure, but yes").relevant is True

    def test_keeps_raw_text(self):
        assert parse_relevance_verdict("Yes.").raw == "Yes."


class TestDocumentGrader:

    def test_keeps_relevant_in_input_order(self):
        docs = make_scored_documents(5)
        keep = {"Document content 1", "Document content 3", "Document content 4"}
        gateway = FakeGateway(
            grade_document=lambda p: "yes" if document_text(p).strip() in keep else "no",
        )

        kept = asyncio.run(DocumentGrader(gateway).grade("question", docs))

        assert [d.chunk.content for d in kept] == [
            "Document content 1", "Document content 3", "Document content 4",
        ]
        assert len(gateway.calls["grade_document"]) == 5

    def test_all_rejected_keeps_top_three_by_rank(self):
        docs = make_scored_documents(5)
        kept = asyncio.run(DocumentGrader(FakeGateway(grade_document="no")).grade("q", list(reversed(docs))))
        assert [d.rank for d in kept] == [0, 1, 2]

    def test_all_rejected_with_fewer_than_three(self):
        docs = make_scored_documents(2)
        kept = asyncio.run(DocumentGrader(FakeGateway(grade_document="no")).grade("q", docs))
        assert len(kept) == 2

    def test_failed_call_keeps_chunk(self):
        docs = make_scored_documents(3)
        gateway = FakeGateway(grade_document=RuntimeError("rate limited"))
        kept = asyncio.run(DocumentGrader(gateway).grade("q", docs))
        assert kept == docs

    def test_unparseable_reply_keeps_chunk(self):
        docs = make_scored_documents(2)
        gateway = FakeGateway(
            grade_document=lambda p: "maybe" if "content 0" in p else "no",
        )
        kept = asyncio.run(DocumentGrader(gateway).grade("q", docs))
        assert [d.rank for d in kept] == [0]

    def test_unsure_reply_keeps_chunk(self):
        docs = make_scored_documents(2)
        gateway = FakeGateway(
            grade_document=lambda p: "Not sure, it might be." if "content 0" in p else "no",
        )
        kept = asyncio.run(DocumentGrader(gateway).grade("q", docs))
        assert [d.rank for d in kept] == [0]

    def test_slow_call_keeps_chunk(self):
        docs = make_scored_documents(1)
        gateway = FakeGateway(grade_document="no", delay=0.5)
        kept = asyncio.run(DocumentGrader(gateway, timeout=0.05).grade("q", docs))
        assert kept == docs

    def test_truncates_chunk_text(self):
        docs = make_scored_documents(1)
        docs[0] = docs[0].model_copy(
            update={"chunk": docs[0].chunk.model_copy(update={"content": "x" * 5000})}
        )
        gateway = FakeGateway()
        asyncio.run(DocumentGrader(gateway, char_limit=2000).grade("q", docs))

        prompt = gateway.calls["grade_document"][0]
        assert "x" * 2000 in prompt
        assert "x" * 2001 not in prompt

    def test_concurrency_is_bounded(self):
        docs = make_scored_documents(6)
        gateway = FakeGateway(delay=0.02)
        asyncio.run(DocumentGrader(gateway, max_concurrency=2).grade("q", docs))
        assert gateway.max_in_flight == 2

    def test_no_documents(self):
        gateway = FakeGateway()
        assert asyncio.run(DocumentGrader(gateway).grade("q", [])) == []
        assert gateway.calls["grade_document"] == []

    def test_prompt_contains_question(self):
        gateway = FakeGateway()
        asyncio.run(DocumentGrader(gateway).grade("Where is Paris?", make_scored_documents(1)))
        assert "Where is Paris?" in gateway.calls["grade_document"][0]


class TestAnswerGrader:

    def test_relevant_answer_unchanged(self):
        graded = asyncio.run(AnswerGrader(FakeGateway()).grade("q", "Paris."))
        assert graded.answer == "Paris."
        assert graded.verdict == "relevant"

    def test_strict_replaces_irrelevant_answer(self):
        grader = AnswerGrader(FakeGateway(grade_answer="no"), policy=GradingPolicy.STRICT)
        graded = asyncio.run(grader.grade("q", "Bananas are yellow."))
        assert graded.answer == STRICT_REPLACEMENT
        assert graded.verdict == "not_relevant"

    def test_lenient_appends_disclaimer(self):
        grader = AnswerGrader(FakeGateway(grade_answer="no"), policy=GradingPolicy.LENIENT)
        graded = asyncio.run(grader.grade("q", "Bananas are yellow."))
        assert graded.answer == "Bananas are yellow." + LENIENT_DISCLAIMER
        assert graded.verdict == "not_relevant"

    @pytest.mark.parametrize("policy", [GradingPolicy.LENIENT, GradingPolicy.STRICT])
    def test_grader_failure_returns_answer_unchanged(self, policy):
        grader = AnswerGrader(FakeGateway(grade_answer=RuntimeError("boom")), policy=policy)
        graded = asyncio.run(grader.grade("q", "Paris."))
        assert graded.answer == "Paris."
        assert graded.verdict == "ungraded"

    @pytest.mark.parametrize("answer", ["", "   ", None])
    def test_blank_answer_skips_classifier(self, answer):
        gateway = FakeGateway()
        graded = asyncio.run(AnswerGrader(gateway).grade("q", answer))
        assert graded.answer == NO_ANSWER_MESSAGE
        assert graded.verdict == "empty"
        assert gateway.calls["grade_answer"] == []

    def test_prompt_contains_question_and_answer(self):
        gateway = FakeGateway()
        asyncio.run(AnswerGrader(gateway).grade("Where is it?", "In Paris."))
        prompt = gateway.calls["grade_answer"][0]
        assert "Where is it?" in prompt
        assert "In Paris." in prompt
