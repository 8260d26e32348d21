"""
LangGraph orchestration for the graded RAG pipeline.

Usage:
    from rag_agent.graphs import build_pipeline_graph, PipelineState
"""

from .pipeline import build_pipeline_graph
from .state import PipelineState

__all__ = [
    "build_pipeline_graph",
    "PipelineState",
]
