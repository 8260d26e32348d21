"""
Graded RAG: retrieve, grade the evidence, answer, grade the answer.

This is the entry point of the rag-agent package:

    from rag_agent.techniques import GradedRAG

    rag = GradedRAG()
    response = await rag.run_pipeline(
        "Where is the Eiffel Tower?",
        Sources(urls=["https://en.wikipedia.org/wiki/Eiffel_Tower"]),
    )
    print(response.answer)
    print(response.passages)

Indexes are cached across calls: a second question about the same URLs
skips fetching and embedding entirely. Pass conversation_history to ask
follow-up questions, and a RagConfig to tune chunking and retrieval per
request.

All configuration is optional. AgentConfig() uses OpenAI for both the
chat model and embeddings.
"""

import logging
import time
from typing import Optional, Union

from rag_agent.base.gateway import BaseModelGateway
from rag_agent.config import MAX_URLS, AgentConfig, RagConfig
from rag_agent.errors import InvalidInput
from rag_agent.graphs.pipeline import build_pipeline_graph
from rag_agent.indexing.cache import IndexCache
from rag_agent.indexing.loaders import SUPPORTED_MIME_TYPES
from rag_agent.indexing.vectorstore import VectorIndex
from rag_agent.models.document import Sources, Turn
from rag_agent.models.result import RAGResponse
from rag_agent.utils.helpers import run_with_timeout

logger = logging.getLogger(__name__)


class GradedRAG:
    """
    Graded RAG pipeline over URLs and uploaded documents.

    Internally powered by a LangGraph StateGraph (see graphs/pipeline.py).
    One instance holds one IndexCache, so keep the instance around for as
    long as cached indexes should live.
    """

    def __init__(
        self,
        config: Optional[AgentConfig] = None,
        cache: Optional[IndexCache] = None,
        gateway: Optional[BaseModelGateway] = None,
    ):
        """
        Args:
            config: Full agent configuration. Defaults to AgentConfig().
            cache: Index cache to use. Defaults to a new cache built from
                config.embedding.
            gateway: Model gateway shared by every run. When omitted, one
                is created from config.llm at the start of each run.
        """
        self._config = config or AgentConfig()
        self._cache = cache if cache is not None else IndexCache.create(
            self._config.embedding, timeouts=self._config.timeouts,
        )
        self._gateway = gateway
        self._graph = build_pipeline_graph(
            cache=self._cache,
            llm_config=self._config.llm,
            pipeline_config=self._config.pipeline,
            timeouts=self._config.timeouts,
        )

    @property
    def cache(self) -> IndexCache:
        return self._cache

    @staticmethod
    def validate_request(question: str, sources: Sources) -> None:
        """
        Reject unusable requests before any work starts.

        Raises:
            InvalidInput: empty question, no sources, too many URLs, or an
                upload of an unsupported type.
        """
        if not question or not question.strip():
            raise InvalidInput("Question is required", stage="validate")
        if sources.is_empty():
            raise InvalidInput(
                "Please provide at least one URL or upload a document", stage="validate",
            )
        if len(sources.urls) > MAX_URLS:
            raise InvalidInput(f"Maximum {MAX_URLS} URLs allowed", stage="validate")
        for doc in sources.uploaded_documents:
            mime_type = doc.metadata.get("mime_type")
            if mime_type and mime_type not in SUPPORTED_MIME_TYPES:
                raise InvalidInput(
                    f"Unsupported document type: {mime_type}", stage="validate",
                )

    async def get_or_create_vector_index(
        self,
        sources: Sources,
        rag_config: Optional[RagConfig] = None,
    ) -> VectorIndex:
        """Return the cached index for sources, building it under the build deadline."""
        rag_config = rag_config or self._config.rag
        return await run_with_timeout(
            self._cache.get_or_create(sources, rag_config),
            self._config.timeouts.build_timeout,
            stage="build_index",
        )

    async def run_pipeline(
        self,
        question: str,
        sources: Sources,
        rag_config: Optional[RagConfig] = None,
        conversation_history: Optional[list[Union[Turn, dict]]] = None,
        index: Optional[VectorIndex] = None,
    ) -> RAGResponse:
        """
        Answer one question.

        Args:
            question: The user's question.
            sources: URLs and/or decoded uploads to answer from.
            rag_config: Per-request chunking and retrieval settings.
                Defaults to config.rag.
            conversation_history: Earlier turns, oldest first. Dicts with
                "role" and "content" are accepted.
            index: A pre-built index. Skips the cache entirely.

        Returns:
            RAGResponse with the final answer, the chunks used as context,
            and run metadata.

        Raises:
            InvalidInput: the request was rejected before any work started.
            PipelineTimeout: the run exceeded its overall deadline.
            RAGAgentError: any other stage failure (fetch, embedding, generation).
        """
        self.validate_request(question, sources)
        rag_config = rag_config or self._config.rag
        history = [Turn.model_validate(turn) for turn in conversation_history or []]

        timeouts = self._config.timeouts
        if index is not None or self._cache.is_cached(sources, rag_config):
            deadline = timeouts.query_timeout
        else:
            deadline = timeouts.build_timeout

        state = {
            "question": question,
            "sources": sources,
            "rag_config": rag_config,
            "conversation_history": history,
            "model": self._gateway,
            "index": index,
        }

        logger.info(
            "Running pipeline: %d URL(s), %d upload(s), %d history turn(s)",
            len(sources.urls), len(sources.uploaded_documents), len(history),
        )
        started = time.perf_counter()
        result = await run_with_timeout(
            self._graph.ainvoke(state), deadline, stage="pipeline",
        )
        elapsed = time.perf_counter() - started

        documents = result.get("documents", [])
        terminated = result.get("terminated", False)
        model = result.get("model")
        logger.info(
            "Pipeline finished in %.2fs: %d document(s), terminated=%s",
            elapsed, len(documents), terminated,
        )

        return RAGResponse(
            question=question,
            answer=result.get("generated_answer") or None,
            documents=documents,
            technique="graded_rag",
            metadata={
                "index_source": result.get("index_source"),
                "retrieval_strategy": result.get("retrieval_strategy"),
                "retrieved_count": result.get("retrieved_count", 0),
                "graded_count": result.get("graded_count", 0),
                "answer_verdict": result.get("answer_verdict"),
                "answer_sources": result.get("answer_sources", []),
                "terminated": terminated,
                "model": model.model_name if model is not None else None,
                "elapsed_seconds": round(elapsed, 3),
            },
        )
