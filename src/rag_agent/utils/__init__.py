"""
Utility functions.

Usage:
    from rag_agent.utils.helpers import get_llm, run_with_timeout
"""

from .helpers import configure_logging, get_llm, replace_t_with_space, run_with_timeout

__all__ = ["get_llm", "replace_t_with_space", "run_with_timeout", "configure_logging"]
