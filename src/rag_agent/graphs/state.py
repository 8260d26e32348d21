"""
LangGraph state definition for the graded pipeline.

Each node receives the full state, reads what it needs, and returns a
partial update. How an update is merged into the running state is
declared per field with an Annotated reducer:

    replace              the update wins (the default for a plain field)
    replace_if_nonempty  a falsy update ("" or None) keeps the current value
    replace_if_present   a None update keeps the current value

Usage:
    from rag_agent.graphs.state import PipelineState
"""

from typing import Annotated, Any, Optional

from typing_extensions import TypedDict

from rag_agent.base.gateway import BaseModelGateway
from rag_agent.config import RagConfig
from rag_agent.indexing.vectorstore import VectorIndex
from rag_agent.models.document import ScoredDocument, Sources, Turn


def replace(current: Any, update: Any) -> Any:
    return update


def replace_if_nonempty(current: Any, update: Any) -> Any:
    return update if update else current


def replace_if_present(current: Any, update: Any) -> Any:
    return current if update is None else update


class PipelineState(TypedDict, total=False):
    """
    State for the graded RAG graph.

    Flow: create_model → retrieve_documents → grade_documents
          → generate_answer → grade_generated_answer
          (or → terminate when nothing relevant was found)

    Fields are populated by different nodes:
        - question, sources, rag_config, conversation_history: set at start
        - model:                 set by create_model (unless supplied)
        - index:                 set by retrieve_documents (unless supplied)
        - documents:             set by retrieve_documents, then grade_documents
        - generated_answer:      set by generate_answer, then grade_generated_answer
                                 (or terminate)
        - answer_verdict:        set by grade_generated_answer
        - terminated:            set by terminate
    """

    # Input
    question: str
    sources: Sources
    rag_config: RagConfig
    conversation_history: Annotated[list[Turn], replace]

    # Shared resources
    model: Annotated[Optional[BaseModelGateway], replace_if_present]
    index: Annotated[Optional[VectorIndex], replace_if_present]
    index_source: str          # "supplied", "cache" or "built"

    # After retrieval / grading
    documents: Annotated[list[ScoredDocument], replace]
    retrieved_count: int
    retrieval_strategy: str
    graded_count: int

    # After generation / answer grading
    generated_answer: Annotated[Optional[str], replace_if_nonempty]
    answer_sources: list[str]
    answer_verdict: str
    terminated: bool
