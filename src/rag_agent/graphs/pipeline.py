"""
Graded RAG LangGraph graph.

The pipeline reflects twice: once on what was retrieved, once on what
was generated.

    1. CREATE MODEL: build the model gateway (skipped if one is supplied)
    2. RETRIEVE: get or build the vector index, search it
    3. GRADE DOCUMENTS: drop chunks the model judges irrelevant
       - nothing left → terminate with the fallback answer
    4. GENERATE: answer from the kept chunks + recent conversation
    5. GRADE ANSWER: check the answer against the question

Graph structure:
    START → create_model → retrieve_documents → grade_documents
          → [generate_answer → grade_generated_answer]
          → [terminate]
          → END

Usage:
    from rag_agent.graphs.pipeline import build_pipeline_graph

    graph = build_pipeline_graph(cache=IndexCache.create())
    result = await graph.ainvoke({
        "question": "Where is the Eiffel Tower?",
        "sources": Sources(urls=["https://en.wikipedia.org/wiki/Eiffel_Tower"]),
        "rag_config": RagConfig(),
    })
    print(result["generated_answer"])
"""

import logging
from typing import Callable, Optional

from langgraph.graph import END, START, StateGraph

from rag_agent.base.gateway import BaseModelGateway
from rag_agent.config import LLMConfig, PipelineConfig, RagConfig, TimeoutConfig
from rag_agent.errors import RAGAgentError
from rag_agent.generation.gateway import create_gateway
from rag_agent.generation.generate import AnswerGenerator
from rag_agent.generation.grading import AnswerGrader, DocumentGrader
from rag_agent.graphs.state import PipelineState
from rag_agent.indexing.cache import IndexCache
from rag_agent.retrieval.search import get_retriever

logger = logging.getLogger(__name__)


def build_pipeline_graph(
    cache: IndexCache,
    llm_config: Optional[LLMConfig] = None,
    pipeline_config: Optional[PipelineConfig] = None,
    timeouts: Optional[TimeoutConfig] = None,
    gateway_factory: Callable[[LLMConfig], BaseModelGateway] = create_gateway,
):
    """
    Build the graded RAG LangGraph.

    Args:
        cache: Index cache used when the caller does not supply an index.
        llm_config: Settings for the gateway create_model builds.
        pipeline_config: Grading policy, short-circuit and fallback behaviour.
        timeouts: Per-call deadlines for model calls.
        gateway_factory: Builds the gateway from llm_config.

    Returns:
        A compiled LangGraph that accepts a PipelineState with question,
        sources and rag_config, and returns it with generated_answer set.
    """
    llm_config = llm_config or LLMConfig()
    pipeline_config = pipeline_config or PipelineConfig()
    timeouts = timeouts or TimeoutConfig()

    # --- Node functions ---

    async def create_model_node(state: PipelineState) -> dict:
        """Create the model gateway once per run."""
        if state.get("model") is not None:
            return {}
        try:
            gateway = gateway_factory(llm_config)
        except RAGAgentError:
            raise
        except Exception as exc:
            raise RAGAgentError(
                "Could not create the model gateway", stage="create_model", cause=exc,
            ) from exc
        return {"model": gateway}

    async def retrieve_documents_node(state: PipelineState) -> dict:
        """Search the supplied or cached index for the question."""
        rag_config = state.get("rag_config") or RagConfig()

        index = state.get("index")
        if index is not None:
            index_source = "supplied"
        else:
            sources = state["sources"]
            index_source = "cache" if cache.is_cached(sources, rag_config) else "built"
            index = await cache.get_or_create(sources, rag_config)

        retriever = get_retriever(index, rag_config.resolve())
        retrieval = await retriever.aretrieve(state["question"])
        logger.info(
            "Retrieved %d document(s) with %s", len(retrieval.documents), retrieval.strategy,
        )
        return {
            "index": index,
            "index_source": index_source,
            "documents": retrieval.documents,
            "retrieved_count": len(retrieval.documents),
            "retrieval_strategy": retrieval.strategy,
        }

    async def grade_documents_node(state: PipelineState) -> dict:
        """Keep only the chunks judged relevant to the question."""
        grader = DocumentGrader(
            state["model"],
            timeout=timeouts.llm_timeout,
            char_limit=pipeline_config.grading_char_limit,
            max_concurrency=pipeline_config.max_grading_concurrency,
            fallback_top_n=pipeline_config.fallback_top_n,
        )
        documents = await grader.grade(state["question"], state.get("documents", []))
        return {"documents": documents, "graded_count": len(documents)}

    async def generate_answer_node(state: PipelineState) -> dict:
        """Generate an answer from the graded chunks and recent history."""
        generator = AnswerGenerator(
            state["model"],
            history_window=pipeline_config.history_window,
            timeout=timeouts.llm_timeout,
        )
        generation = await generator.agenerate(
            state["question"],
            state.get("documents", []),
            state.get("conversation_history"),
        )
        return {
            "generated_answer": generation.answer,
            "answer_sources": generation.sources,
        }

    async def grade_generated_answer_node(state: PipelineState) -> dict:
        """Check the answer and apply the grading policy."""
        grader = AnswerGrader(
            state["model"],
            policy=pipeline_config.grading_policy,
            timeout=timeouts.llm_timeout,
        )
        graded = await grader.grade(state["question"], state.get("generated_answer"))
        return {"generated_answer": graded.answer, "answer_verdict": graded.verdict}

    async def terminate_node(state: PipelineState) -> dict:
        """End the run without generating."""
        logger.warning("No relevant documents found, terminating early")
        return {
            "generated_answer": pipeline_config.fallback_answer,
            "terminated": True,
        }

    # --- Routing ---

    def route_after_grading(state: PipelineState) -> str:
        """Generate unless grading left nothing and short-circuiting is on."""
        if not state.get("documents") and pipeline_config.short_circuit_on_empty:
            return "terminate"
        return "generate_answer"

    # --- Build the graph ---
    graph = StateGraph(PipelineState)

    graph.add_node("create_model", create_model_node)
    graph.add_node("retrieve_documents", retrieve_documents_node)
    graph.add_node("grade_documents", grade_documents_node)
    graph.add_node("generate_answer", generate_answer_node)
    graph.add_node("grade_generated_answer", grade_generated_answer_node)
    graph.add_node("terminate", terminate_node)

    graph.add_edge(START, "create_model")
    graph.add_edge("create_model", "retrieve_documents")
    graph.add_edge("retrieve_documents", "grade_documents")

    graph.add_conditional_edges(
        "grade_documents",
        route_after_grading,
        {
            "generate_answer": "generate_answer",
            "terminate": "terminate",
        },
    )

    graph.add_edge("generate_answer", "grade_generated_answer")
    graph.add_edge("grade_generated_answer", END)
    graph.add_edge("terminate", END)

    return graph.compile()
