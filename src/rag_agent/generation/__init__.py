"""
Generation components: model gateway, answer generation, grading.

Usage:
    from rag_agent.generation import create_gateway, AnswerGenerator, DocumentGrader, AnswerGrader
"""

from .gateway import ChatModelGateway, create_gateway
from .generate import AnswerGenerator, format_history
from .grading import AnswerGrader, DocumentGrader, parse_relevance_verdict

__all__ = [
    # Gateway
    "ChatModelGateway",
    "create_gateway",
    # Generation
    "AnswerGenerator",
    "format_history",
    # Grading
    "DocumentGrader",
    "AnswerGrader",
    "parse_relevance_verdict",
]
