"""Base protocol and types for LLM providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class LLMResponse:
    """Standardized response from LLM providers.

    Attributes:
        content: The generated text
        prompt_tokens: Number of tokens in the prompt
        completion_tokens: Number of tokens in the completion
        finish_reason: Why generation stopped (stop, length, etc.)
        model: The actual model used (may differ from requested)
        duration_ms: Time taken for the API call in milliseconds
        raw_response: Provider-specific raw response for debugging
    """

    content: str
    prompt_tokens: int
    completion_tokens: int
    finish_reason: str
    model: str
    duration_ms: float
    raw_response: Any = None

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class LLMProvider(ABC):
    """Abstract base class for text-generation providers used for commit summaries.

    Implementations make a single blocking, non-streaming request and let
    SDK errors propagate; callers decide how to contain them.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider identifier (e.g., 'openai', 'anthropic')."""
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model identifier being used."""
        ...

    @abstractmethod
    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 300,
        temperature: float = 0.0,
    ) -> LLMResponse:
        """Generate a completion from the LLM.

        Args:
            system_prompt: System message setting the context
            user_prompt: User message with the actual request
            max_tokens: Maximum tokens in the response
            temperature: Sampling temperature (0.0 for repeatable output)

        Returns:
            LLMResponse with the completion and metadata
        """
        ...

    @abstractmethod
    def calculate_cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        """Calculate the cost in USD for the given token usage."""
        ...
