"""Tests for the commit summarizer and LLM providers."""

from unittest.mock import Mock, patch

import pytest
from conftest import make_detail, make_reference

from commitscope.annotation import CommitSummarizer, build_prompt
from commitscope.annotation.providers import create_provider, provider_from_settings
from commitscope.annotation.providers.anthropic_provider import AnthropicProvider
from commitscope.annotation.providers.base import LLMResponse
from commitscope.annotation.providers.openai_provider import OpenAIProvider
from commitscope.config import Settings


def _response(content: str) -> LLMResponse:
    return LLMResponse(
        content=content,
        prompt_tokens=120,
        completion_tokens=40,
        finish_reason="stop",
        model="gpt-4o-mini",
        duration_ms=12.0,
    )


@pytest.fixture
def detail():
    return make_detail(make_reference("abc1234"), message="Add widget export\n\nCSV only")


@pytest.fixture
def provider() -> Mock:
    mock = Mock()
    mock.provider_name = "openai"
    mock.calculate_cost.return_value = 0.0001
    return mock


class TestBuildPrompt:
    """Tests for prompt construction."""

    def test_prompt_lists_message_files_and_stats(self, detail):
        prompt = build_prompt(detail)

        assert "Commit message: Add widget export\n\nCSV only" in prompt
        assert "- src/app.py (modified): +8/-2" in prompt
        assert "- README.md (added): +2/-0" in prompt
        assert "Stats: +10/-2 (2 files)" in prompt

    def test_prompt_is_deterministic(self, detail):
        assert build_prompt(detail) == build_prompt(detail)

    def test_prompt_without_files(self, detail):
        detail.files = []
        assert "- (no file changes)" in build_prompt(detail)


class TestCommitSummarizer:
    """Tests for CommitSummarizer failure containment."""

    @pytest.mark.asyncio
    async def test_summary_is_trimmed(self, provider, detail):
        provider.complete.return_value = _response("  Adds CSV export for widgets.\n")
        summarizer = CommitSummarizer(provider, max_tokens=200)

        summary = await summarizer.summarize(detail)

        assert summary == "Adds CSV export for widgets."
        args = provider.complete.call_args[0]
        assert args[1] == build_prompt(detail)
        assert args[2] == 200
        assert args[3] == 0.0

    @pytest.mark.asyncio
    async def test_provider_error_yields_none(self, provider, detail):
        provider.complete.side_effect = RuntimeError("rate limited")

        assert await CommitSummarizer(provider).summarize(detail) is None

    @pytest.mark.asyncio
    async def test_empty_completion_yields_none(self, provider, detail):
        provider.complete.return_value = _response("   \n")

        assert await CommitSummarizer(provider).summarize(detail) is None

    @pytest.mark.asyncio
    async def test_cost_calculation_error_yields_none(self, provider, detail):
        provider.complete.return_value = _response("Adds CSV export.")
        provider.calculate_cost.side_effect = KeyError("unknown model")

        assert await CommitSummarizer(provider).summarize(detail) is None


class TestProviders:
    """Tests for provider construction and SDK calls."""

    @patch("commitscope.annotation.providers.openai_provider.OpenAI")
    def test_openai_complete(self, mock_openai_class: Mock):
        """The OpenAI provider sends system and user messages without streaming."""
        mock_response = Mock()
        mock_response.model = "gpt-4o-mini"
        mock_response.usage = Mock(prompt_tokens=150, completion_tokens=50)
        mock_response.choices = [
            Mock(message=Mock(content="Adds export."), finish_reason="stop")
        ]
        mock_openai_class.return_value.chat.completions.create.return_value = mock_response

        provider = OpenAIProvider(api_key="sk-test", base_url="https://api.mistral.ai/v1")
        response = provider.complete("system", "user", max_tokens=300)

        assert response.content == "Adds export."
        assert response.total_tokens == 200
        mock_openai_class.assert_called_once_with(
            api_key="sk-test", base_url="https://api.mistral.ai/v1"
        )
        call_kwargs = mock_openai_class.return_value.chat.completions.create.call_args[1]
        assert call_kwargs["messages"][0] == {"role": "system", "content": "system"}
        assert call_kwargs["stream"] is False
        assert call_kwargs["max_tokens"] == 300

    @patch("commitscope.annotation.providers.anthropic_provider.Anthropic")
    def test_anthropic_complete_joins_text_blocks(self, mock_anthropic_class: Mock):
        mock_response = Mock()
        mock_response.model = "claude-3-5-haiku-20241022"
        mock_response.stop_reason = "end_turn"
        mock_response.usage = Mock(input_tokens=90, output_tokens=30)
        mock_response.content = [Mock(text="Adds "), Mock(text="export.")]
        mock_anthropic_class.return_value.messages.create.return_value = mock_response

        provider = AnthropicProvider(api_key="sk-ant-test")
        response = provider.complete("system", "user")

        assert response.content == "Adds export."
        assert response.prompt_tokens == 90
        call_kwargs = mock_anthropic_class.return_value.messages.create.call_args[1]
        assert call_kwargs["system"] == "system"

    def test_create_provider_requires_key(self):
        with pytest.raises(ValueError, match="API key is required"):
            create_provider("openai", "")

    def test_create_provider_rejects_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown provider type"):
            create_provider("mistral", "key")  # type: ignore[arg-type]

    def test_provider_from_settings_without_key(self):
        config = Settings(_env_file=None, openai_api_key="", anthropic_api_key="")
        assert provider_from_settings(config) is None

    @patch("commitscope.annotation.providers.anthropic_provider.Anthropic")
    def test_provider_from_settings_anthropic(self, mock_anthropic_class: Mock):
        config = Settings(
            _env_file=None, llm_provider="anthropic", anthropic_api_key="sk-ant-test"
        )

        provider = provider_from_settings(config)

        assert provider.provider_name == "anthropic"
        assert provider.model_name == "claude-3-5-haiku-20241022"
