"""LLM provider implementations for commit summaries.

Currently supported providers:
- OpenAI (gpt-4o-mini, gpt-4o, and OpenAI-compatible endpoints via base_url)
- Anthropic (claude-3-5-haiku, claude-3-5-sonnet, etc.)

Usage:
    from commitscope.annotation.providers import create_provider

    provider = create_provider(
        provider_type="openai",
        api_key="sk-xxx",
        model="gpt-4o-mini",
    )
"""

import logging
from typing import Literal, Optional

from commitscope.annotation.providers.base import LLMProvider, LLMResponse
from commitscope.config import Settings, settings

logger = logging.getLogger(__name__)

# Type alias for provider names
ProviderType = Literal["openai", "anthropic"]


def create_provider(
    provider_type: ProviderType,
    api_key: str,
    model: str | None = None,
    base_url: str | None = None,
) -> LLMProvider:
    """Factory function to create LLM providers.

    Args:
        provider_type: The provider to use ("openai" or "anthropic")
        api_key: API key for the provider
        model: Optional model override (uses provider default if not specified)
        base_url: Optional OpenAI-compatible endpoint (openai only)

    Returns:
        Configured LLMProvider instance

    Raises:
        ValueError: If provider_type is unknown or api_key is missing
    """
    if not api_key:
        raise ValueError(f"API key is required for {provider_type} provider")

    if provider_type == "openai":
        from commitscope.annotation.providers.openai_provider import OpenAIProvider

        return OpenAIProvider(
            api_key=api_key,
            model=model or "gpt-4o-mini",
            base_url=base_url,
        )

    elif provider_type == "anthropic":
        from commitscope.annotation.providers.anthropic_provider import (
            AnthropicProvider,
        )

        return AnthropicProvider(
            api_key=api_key,
            model=model or "claude-3-5-haiku-20241022",
        )

    else:
        raise ValueError(
            f"Unknown provider type: {provider_type}. "
            f"Supported providers: openai, anthropic"
        )


def provider_from_settings(config: Optional[Settings] = None) -> Optional[LLMProvider]:
    """Build the configured provider, or None when no API key is set."""
    config = config or settings
    if not config.llm_api_key:
        return None

    if config.llm_provider == "anthropic":
        return create_provider("anthropic", config.anthropic_api_key, config.anthropic_model)
    return create_provider(
        "openai",
        config.openai_api_key,
        config.openai_model,
        base_url=config.openai_base_url,
    )


__all__ = [
    "LLMProvider",
    "LLMResponse",
    "ProviderType",
    "create_provider",
    "provider_from_settings",
]
