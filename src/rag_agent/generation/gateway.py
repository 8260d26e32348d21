"""
Model gateway backed by a LangChain chat model.

One gateway per pipeline run: created once from LLMConfig and shared by
document grading, answer generation and answer grading. The provider
(OpenAI, Anthropic, a local Ollama model) is picked by get_llm(); the
gateway itself only knows "prompt in, text out".

Usage:
    from rag_agent.generation.gateway import create_gateway

    gateway = create_gateway(LLMConfig(provider="ollama", model_name="llama3.1"))
    text = await gateway.complete("Say hi")
"""

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser

from rag_agent.base.gateway import BaseModelGateway
from rag_agent.config import LLMConfig
from rag_agent.utils.helpers import get_llm


class ChatModelGateway(BaseModelGateway):
    """
    Wraps a chat model as `llm | StrOutputParser()`.

    A plain string prompt is sent as a single human message; the reply
    comes back as text.
    """

    def __init__(self, llm: BaseChatModel, model_name: str = ""):
        self._chain = llm | StrOutputParser()
        self.model_name = model_name

    async def complete(self, prompt: str) -> str:
        return await self._chain.ainvoke(prompt)


def create_gateway(config: LLMConfig) -> ChatModelGateway:
    """Instantiate the chat model for config and wrap it."""
    return ChatModelGateway(
        get_llm(config),
        model_name=f"{config.provider.value}/{config.model_name}",
    )
