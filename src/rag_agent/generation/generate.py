"""
Answer generation from graded context.

Takes the question + the chunks that survived grading (+ recent
conversation turns) and produces a grounded answer through the model
gateway.

The prompt tells the model to:
    - answer only from the provided context
    - say it doesn't know when the context is not enough
    - keep it to three sentences

An empty chunk list is allowed: the prompt then carries empty context
and the model is expected to say it lacks the information. Whether the
pipeline ever gets here with no chunks is its own decision
(PipelineConfig.short_circuit_on_empty).

Usage:
    generator = AnswerGenerator(gateway, history_window=6)
    result = await generator.agenerate("Where is the Eiffel Tower?", documents, history)
    print(result.answer)
"""

import logging
from typing import Optional

from langchain_core.prompts import PromptTemplate

from rag_agent.base.gateway import BaseModelGateway
from rag_agent.base.generator import BaseGenerator
from rag_agent.errors import GenerationFailure, PipelineTimeout
from rag_agent.models.document import ScoredDocument, Turn
from rag_agent.models.result import GenerationResult
from rag_agent.utils.helpers import run_with_timeout

logger = logging.getLogger(__name__)

ANSWER_TEMPLATE = (
    "You are an assistant for question-answering tasks. "
    "Use the following pieces of retrieved context to answer the question. "
    "Answer only from the context. If the context does not contain the answer, "
    "just say that you don't know. "
    "Use three sentences maximum and keep the answer concise.\n\n"
    "{history}"
    "Context:\n{context}\n\n"
    "Question: {question}\n\n"
    "Answer:"
)


def format_history(history: Optional[list[Turn]], window: int) -> str:
    """
    Render the last `window` turns, oldest first.

    Returns an empty string when there is nothing to show, so the prompt
    has no dangling header.
    """
    if not history or window <= 0:
        return ""
    lines = [f"{turn.role.capitalize()}: {turn.content}" for turn in history[-window:]]
    return "Conversation so far:\n" + "\n".join(lines) + "\n\n"


class AnswerGenerator(BaseGenerator):
    """
    Context + question (+ history) → answer.

    Generation failure is not recoverable: a failed model call raises
    GenerationFailure (or PipelineTimeout past the deadline) and ends
    the run.
    """

    def __init__(
        self,
        gateway: BaseModelGateway,
        history_window: int = 6,
        timeout: float = 30.0,
    ):
        self._gateway = gateway
        self._history_window = history_window
        self._timeout = timeout
        self._prompt = PromptTemplate(
            input_variables=["history", "context", "question"],
            template=ANSWER_TEMPLATE,
        )

    async def agenerate(
        self,
        question: str,
        documents: list[ScoredDocument],
        history: Optional[list[Turn]] = None,
    ) -> GenerationResult:
        context = "\n\n".join(doc.chunk.content for doc in documents)
        prompt = self._prompt.format(
            history=format_history(history, self._history_window),
            context=context,
            question=question,
        )

        try:
            answer = await run_with_timeout(
                self._gateway.complete(prompt), self._timeout, stage="generate_answer",
            )
        except PipelineTimeout:
            raise
        except Exception as exc:
            raise GenerationFailure(
                "Answer generation failed", stage="generate_answer", cause=exc,
            ) from exc

        # Deduplicate, keeping first-seen order
        sources = list(dict.fromkeys(
            doc.chunk.metadata.source for doc in documents if doc.chunk.metadata.source
        ))

        logger.info("Generated answer from %d context chunk(s)", len(documents))
        return GenerationResult(
            answer=answer.strip(),
            sources=sources,
            model=self._gateway.model_name,
        )
