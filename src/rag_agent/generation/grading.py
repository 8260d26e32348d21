"""
LLM-backed grading: is this chunk / this answer relevant to the question?

Both graders use the model as a binary classifier and both share one
parser, parse_relevance_verdict(), so yes/no sniffing lives in exactly
one place.

Grading never fails a run. A grading call that errors, times out or
returns something unparseable becomes a ClassificationFailure, which the
grader catches and resolves in favour of keeping information:

    DocumentGrader   failed call → keep the chunk
                     everything rejected → keep the top 3 by retrieval rank
    AnswerGrader     failed call → answer unchanged

Usage:
    kept = await DocumentGrader(gateway).grade(question, retrieval.documents)
    graded = await AnswerGrader(gateway, policy=GradingPolicy.STRICT).grade(question, answer)
"""

import asyncio
import logging
import re
from typing import Optional

from langchain_core.prompts import PromptTemplate

from rag_agent.base.gateway import BaseModelGateway
from rag_agent.config import GradingPolicy
from rag_agent.errors import ClassificationFailure
from rag_agent.models.document import ScoredDocument
from rag_agent.models.result import GradedAnswer, RelevanceVerdict
from rag_agent.utils.helpers import run_with_timeout

logger = logging.getLogger(__name__)

DOCUMENT_GRADER_TEMPLATE = (
    "You are a grader deciding if a document is relevant to a question.\n\n"
    "Question: {question}\n\n"
    "Document: {document}\n\n"
    "If the document contains information related to the question, even partially, "
    "it is relevant.\n"
    "Answer with a single word: 'yes' or 'no'. Do not return any other text."
)

ANSWER_GRADER_TEMPLATE = (
    "You are a grader deciding if a generated answer is relevant to a question.\n\n"
    "Question:\n{question}\n\n"
    "Generated Answer:\n{answer}\n\n"
    "Answer with a single word: 'yes' or 'no'."
)

STRICT_REPLACEMENT = "Sorry, I don't know the answer to that question."
NO_ANSWER_MESSAGE = "I could not find an answer in the provided sources."
LENIENT_DISCLAIMER = (
    "\n\nNote: this answer may be incomplete or may not fully address your question."
)

_POSITIVE = {"yes", "relevant", "true"}
_NEGATIVE = {"no", "irrelevant", "false"}


def parse_relevance_verdict(text: str) -> RelevanceVerdict:
    """
    Parse a grader reply into a verdict.

    The first word decides when it is a clear yes/no ("Yes.", "no - the
    document is about ...", "Not relevant."). Otherwise the reply must
    mention exactly one of "yes"/"no". Anything else is ambiguous and raises
    ClassificationFailure; graders treat that as relevant.
    """
    words = re.findall(r"[a-z]+", text.lower())
    if not words:
        raise ClassificationFailure("Grader returned no text", stage="parse_verdict")

    if words[0] in _POSITIVE:
        return RelevanceVerdict(relevant=True, raw=text)
    if words[0] in _NEGATIVE or words[:2] == ["not", "relevant"]:
        return RelevanceVerdict(relevant=False, raw=text)

    has_yes = "yes" in words
    has_no = "no" in words
    if has_yes != has_no:
        return RelevanceVerdict(relevant=has_yes, raw=text)

    raise ClassificationFailure(
        f"Could not read a yes/no verdict from {text[:80]!r}", stage="parse_verdict",
    )


class _BinaryGrader:
    """Shared call-and-parse step for both graders."""

    def __init__(self, gateway: BaseModelGateway, timeout: float):
        self._gateway = gateway
        self._timeout = timeout

    async def _classify(self, prompt: str, stage: str) -> RelevanceVerdict:
        """
        One classification call.

        Raises:
            ClassificationFailure: call failed, timed out, or reply unparseable.
        """
        try:
            reply = await run_with_timeout(
                self._gateway.complete(prompt), self._timeout, stage=stage,
            )
        except Exception as exc:
            raise ClassificationFailure(
                "Grading call failed", stage=stage, cause=exc,
            ) from exc
        return parse_relevance_verdict(reply)


class DocumentGrader(_BinaryGrader):
    """
    Filters retrieved chunks down to the ones relevant to the question.

    Each chunk is classified independently (concurrently, up to
    max_concurrency calls at once). The output keeps the input order.
    Chunk text is truncated to char_limit before it is sent, to stay
    inside the model's context.
    """

    def __init__(
        self,
        gateway: BaseModelGateway,
        timeout: float = 30.0,
        char_limit: int = 2000,
        max_concurrency: int = 8,
        fallback_top_n: int = 3,
    ):
        super().__init__(gateway, timeout)
        self._char_limit = char_limit
        self._max_concurrency = max_concurrency
        self._fallback_top_n = fallback_top_n
        self._prompt = PromptTemplate(
            input_variables=["question", "document"],
            template=DOCUMENT_GRADER_TEMPLATE,
        )

    async def grade(
        self,
        question: str,
        documents: list[ScoredDocument],
    ) -> list[ScoredDocument]:
        if not documents:
            return []

        logger.info("Grading %d document(s) for relevance", len(documents))
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _is_relevant(doc: ScoredDocument) -> bool:
            prompt = self._prompt.format(
                question=question,
                document=doc.chunk.content[:self._char_limit],
            )
            async with semaphore:
                try:
                    verdict = await self._classify(prompt, stage="grade_documents")
                except ClassificationFailure as exc:
                    logger.warning("Keeping chunk %d, grading failed: %s", doc.rank, exc)
                    return True
            return verdict.relevant

        decisions = await asyncio.gather(*(_is_relevant(doc) for doc in documents))
        kept = [doc for doc, keep in zip(documents, decisions) if keep]

        if not kept:
            kept = sorted(documents, key=lambda d: d.rank)[:self._fallback_top_n]
            logger.warning(
                "Grader rejected all %d document(s); keeping top %d by retrieval rank",
                len(documents), len(kept),
            )

        logger.info("Found %d relevant document(s) out of %d", len(kept), len(documents))
        return kept


class AnswerGrader(_BinaryGrader):
    """
    Checks the generated answer against the question.

    What happens to a rejected answer depends on the policy:
        STRICT   replaced by a fixed "I don't know" message
        LENIENT  kept, with a disclaimer appended

    Under both policies a blank answer is replaced by a fixed message
    without calling the model, and a failed grading call passes the
    answer through unchanged.
    """

    def __init__(
        self,
        gateway: BaseModelGateway,
        policy: GradingPolicy = GradingPolicy.LENIENT,
        timeout: float = 30.0,
    ):
        super().__init__(gateway, timeout)
        self._policy = policy
        self._prompt = PromptTemplate(
            input_variables=["question", "answer"],
            template=ANSWER_GRADER_TEMPLATE,
        )

    async def grade(self, question: str, answer: Optional[str]) -> GradedAnswer:
        if not answer or not answer.strip():
            logger.warning("No answer was generated")
            return GradedAnswer(answer=NO_ANSWER_MESSAGE, verdict="empty")

        prompt = self._prompt.format(question=question, answer=answer)
        try:
            verdict = await self._classify(prompt, stage="grade_answer")
        except ClassificationFailure as exc:
            logger.warning("Answer grading failed, returning answer as is: %s", exc)
            return GradedAnswer(answer=answer, verdict="ungraded")

        if verdict.relevant:
            return GradedAnswer(answer=answer, verdict="relevant")

        logger.info("Answer judged not relevant (policy=%s)", self._policy.value)
        if self._policy == GradingPolicy.STRICT:
            return GradedAnswer(answer=STRICT_REPLACEMENT, verdict="not_relevant")
        return GradedAnswer(answer=answer + LENIENT_DISCLAIMER, verdict="not_relevant")
