"""
Abstract base class for the language model gateway.

Three pipeline stages talk to a model (document grading, answer
generation and answer grading), each with its own prompt. They all go
through this one narrow interface: prompt in, text out. Swapping the
provider (hosted API vs. local model) means swapping the gateway, not
the stages.
"""

from abc import ABC, abstractmethod


class BaseModelGateway(ABC):
    """
    Contract for model gateways.

    complete() may fail transiently (network, rate limit) or return text
    in an unexpected format; callers parse defensively.
    """

    #: Identifier reported in GenerationResult.model, e.g. "openai/gpt-4.1".
    model_name: str = ""

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """
        Send a prompt and return the model's text.

        Args:
            prompt: Fully formatted prompt.

        Returns:
            The generated text.
        """
        ...
