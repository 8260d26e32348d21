"""
Shared utility functions.

Helpers used across the agent: LLM factory, text cleaning, deadlines,
logging setup.
"""

import asyncio
import logging
import os
import sys
from typing import Awaitable, Optional, TypeVar

from langchain_core.documents import Document
from langchain_core.language_models.chat_models import BaseChatModel

from rag_agent.config import LLMConfig, LLMProvider
from rag_agent.errors import PipelineTimeout

T = TypeVar("T")


def get_llm(config: LLMConfig) -> BaseChatModel:
    """
    Factory that returns a LangChain chat model based on config.

    Lazy imports so you only need the package for the provider you
    actually use. OLLAMA talks to a local model server.

    Args:
        config: LLMConfig with provider, model_name, temperature, max_tokens.

    Returns:
        A LangChain BaseChatModel instance.
    """
    if config.provider == LLMProvider.OPENAI:
        from langchain_openai import ChatOpenAI

        kwargs = {}
        if config.base_url:
            kwargs["base_url"] = config.base_url
        return ChatOpenAI(
            model=config.model_name,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            **kwargs,
        )

    elif config.provider == LLMProvider.ANTHROPIC:
        from langchain_anthropic import ChatAnthropic

        return ChatAnthropic(
            model=config.model_name,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )

    elif config.provider == LLMProvider.OLLAMA:
        try:
            from langchain_ollama import ChatOllama
        except ImportError:
            raise ImportError(
                "Local models require langchain-ollama. "
                "Install with: pip install rag-agent[local]"
            )

        kwargs = {}
        if config.base_url:
            kwargs["base_url"] = config.base_url
        return ChatOllama(
            model=config.model_name,
            temperature=config.temperature,
            num_predict=config.max_tokens,
            **kwargs,
        )

    else:
        raise ValueError(
            f"Unknown LLM provider: '{config.provider}'. "
            f"Supported: 'openai', 'anthropic', 'ollama'."
        )


def replace_t_with_space(documents: list[Document]) -> list[Document]:
    """
    Replace tab characters with spaces in document content.

    Scraped HTML and PDF-extracted text often carry stray tabs.
    Modifies in place and returns the same list.
    """
    for doc in documents:
        doc.page_content = doc.page_content.replace("\t", " ")
    return documents


async def run_with_timeout(awaitable: Awaitable[T], timeout: float, stage: str) -> T:
    """
    Await with a deadline.

    On expiry the awaitable is cancelled and PipelineTimeout is raised
    with the stage name, so callers can tell "slow" from "broken".
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise PipelineTimeout(
            f"{stage} exceeded its {timeout:.0f}s deadline",
            stage=stage,
            timeout=timeout,
            cause=exc,
        ) from exc


def configure_logging(level: Optional[str] = None) -> None:
    """
    Console logging for scripts and services embedding the agent.

    Level comes from the argument, then RAG_LOG_LEVEL, then INFO.
    """
    level = (level or os.getenv("RAG_LOG_LEVEL") or "INFO").upper()

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    root.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    )
    root.addHandler(handler)

    # Silence noisy libs
    for name in ("urllib3", "httpx", "httpcore", "openai", "anthropic"):
        logging.getLogger(name).setLevel(logging.WARNING)
