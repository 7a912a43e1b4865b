"""Anthropic LLM provider implementation."""

import logging
import time
from typing import Any

from anthropic import Anthropic

from commitscope.annotation.providers.base import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


# Pricing per 1M tokens
ANTHROPIC_PRICING = {
    "claude-3-5-haiku-20241022": {"input": 0.80, "output": 4.00},
    "claude-3-5-sonnet-20241022": {"input": 3.00, "output": 15.00},
    "default": {"input": 3.00, "output": 15.00},
}


class AnthropicProvider(LLMProvider):
    """Anthropic Messages API provider."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-haiku-20241022",
    ):
        if not api_key:
            raise ValueError("Anthropic API key is required")

        self.client = Anthropic(api_key=api_key)
        self._model = model
        logger.info(f"Initialized Anthropic provider with model: {model}")

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def model_name(self) -> str:
        return self._model

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 300,
        temperature: float = 0.0,
    ) -> LLMResponse:
        start_time = time.time()

        request_params: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }

        response = self.client.messages.create(**request_params)
        duration_ms = (time.time() - start_time) * 1000

        # Concatenate text blocks
        content = ""
        for block in response.content:
            if hasattr(block, "text"):
                content += block.text

        usage = response.usage
        return LLMResponse(
            content=content,
            prompt_tokens=usage.input_tokens if usage else 0,
            completion_tokens=usage.output_tokens if usage else 0,
            finish_reason=response.stop_reason or "unknown",
            model=response.model,
            duration_ms=duration_ms,
            raw_response=response,
        )

    def calculate_cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        pricing = ANTHROPIC_PRICING.get(self._model, ANTHROPIC_PRICING["default"])

        input_cost = prompt_tokens * (pricing["input"] / 1_000_000)
        output_cost = completion_tokens * (pricing["output"] / 1_000_000)

        return input_cost + output_cost
