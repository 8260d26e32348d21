"""
RAG techniques: the public API of the rag-agent package.

Usage:
    from rag_agent.techniques import GradedRAG

    rag = GradedRAG()
    response = await rag.run_pipeline("What is RAG?", Sources(urls=[url]))
"""

from .graded_rag import GradedRAG

__all__ = [
    "GradedRAG",
]
