"""
Unit tests for provider clients.

Tests response-shape extraction, error normalization and the OpenAI and
Gemini client wrappers.
"""

from types import SimpleNamespace
from unittest.mock import Mock, patch

import httpx
import openai
import pytest

from ai_writing_guard.core.errors import ProviderError, ProviderTimeout, ProviderUnavailable
from ai_writing_guard.core.token_counter import extract_total_tokens
from ai_writing_guard.providers import GeminiProvider, OpenAIProvider, build_provider
from ai_writing_guard.providers.base import ProviderSettings, extract_text, normalize_error


class UpstreamError(Exception):
    """SDK-style error carrying an HTTP status."""
    def __init__(self, message, status_code=None, code=None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code


def openai_response(text, total_tokens=None):
    usage = None if total_tokens is None else SimpleNamespace(total_tokens=total_tokens)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=usage
    )


class TestExtractText:
    """Test generated-text extraction across response shapes."""

    def test_primary_text_field(self):
        assert extract_text(SimpleNamespace(text="hello")) == "hello"

    def test_nested_response_text(self):
        raw = {"response": {"text": "nested"}}
        assert extract_text(raw) == "nested"

    def test_first_output_item_content(self):
        raw = {"output": [{"content": "first"}, {"content": "second"}]}
        assert extract_text(raw) == "first"

    def test_chat_completion_shape(self):
        assert extract_text(openai_response("from choices")) == "from choices"

    def test_primary_field_wins_over_others(self):
        raw = {"text": "primary", "response": {"text": "nested"}}
        assert extract_text(raw) == "primary"

    def test_non_string_fields_are_skipped(self):
        raw = {"text": None, "response": {"text": 42}, "output": [{"content": "ok"}]}
        assert extract_text(raw) == "ok"

    def test_unknown_shape_returns_empty_string(self):
        assert extract_text({"something": "else"}) == ""
        assert extract_text(None) == ""
        assert extract_text({"output": []}) == ""


class TestExtractTotalTokens:
    """Test token-count extraction from usage metadata."""

    def test_gemini_usage_metadata(self):
        raw = SimpleNamespace(usage_metadata=SimpleNamespace(total_token_count=321))
        assert extract_total_tokens(raw) == 321

    def test_openai_usage(self):
        assert extract_total_tokens(openai_response("x", total_tokens=150)) == 150

    def test_camel_case_usage(self):
        assert extract_total_tokens({"usage": {"totalTokens": 77}}) == 77

    def test_metadata_token_count_string(self):
        assert extract_total_tokens({"metadata": {"tokenCount": "12"}}) == 12

    def test_missing_usage_defaults_to_zero(self):
        assert extract_total_tokens(SimpleNamespace(text="x")) == 0
        assert extract_total_tokens({"usage": None}) == 0

    def test_invalid_counts_are_ignored(self):
        assert extract_total_tokens({"usage": {"total_tokens": -5}}) == 0
        assert extract_total_tokens({"usage": {"total_tokens": True}}) == 0
        assert extract_total_tokens({"usage": {"total_tokens": "lots"}}) == 0


class TestNormalizeError:
    """Test mapping of SDK failures onto ProviderError."""

    def test_status_code_is_kept(self):
        err = normalize_error(UpstreamError("not found", status_code=404), "openai")
        assert isinstance(err, ProviderError)
        assert err.status_code == 404
        assert "not found" in err.message

    def test_integer_code_is_used(self):
        err = normalize_error(UpstreamError("bad gateway", code=502), "gemini")
        assert err.status_code == 502

    def test_quota_message_forces_429(self):
        err = normalize_error(UpstreamError("Quota exceeded for project", status_code=400), "gemini")
        assert err.status_code == 429

    def test_unknown_status_defaults_to_500(self):
        err = normalize_error(RuntimeError("boom"), "openai")
        assert err.status_code == 500

    def test_non_integer_code_is_ignored(self):
        err = normalize_error(UpstreamError("bad", code="INVALID_ARGUMENT"), "gemini")
        assert err.status_code == 500


class TestProviderSettings:
    """Test provider settings validation."""

    def test_is_configured(self):
        assert ProviderSettings("openai", api_key="sk-test").is_configured
        assert not ProviderSettings("openai").is_configured
        assert not ProviderSettings("openai", api_key="   ").is_configured

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError, match="timeout_seconds"):
            ProviderSettings("openai", api_key="k", timeout_seconds=0)

    def test_build_provider_unknown_backend(self):
        with pytest.raises(ValueError, match="Unsupported provider backend"):
            build_provider(ProviderSettings("bard", api_key="k"))


class TestOpenAIProvider:
    """Test OpenAI client wrapper."""

    @patch('ai_writing_guard.providers.openai_provider.OpenAI')
    def test_client_built_without_sdk_retries(self, mock_openai_class):
        OpenAIProvider(ProviderSettings("openai", api_key="sk-test", timeout_seconds=12))

        mock_openai_class.assert_called_once_with(api_key="sk-test", timeout=12, max_retries=0)

    @patch('ai_writing_guard.providers.openai_provider.OpenAI')
    def test_invoke_success(self, mock_openai_class):
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = openai_response("Hello there", 42)
        mock_openai_class.return_value = mock_client

        provider = OpenAIProvider(ProviderSettings("openai", api_key="sk-test"))
        response = provider.invoke("gpt-4o-mini", "Say hello", 0.5, 300)

        mock_client.chat.completions.create.assert_called_once_with(
            model="gpt-4o-mini",
            messages=[{"role": "user", "content": "Say hello"}],
            temperature=0.5,
            max_tokens=300
        )
        assert response.text == "Hello there"
        assert response.tokens_used == 42
        assert response.model == "gpt-4o-mini"

    @patch('ai_writing_guard.providers.openai_provider.OpenAI')
    def test_invoke_without_usage_reports_zero_tokens(self, mock_openai_class):
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = openai_response("text")
        mock_openai_class.return_value = mock_client

        provider = OpenAIProvider(ProviderSettings("openai", api_key="sk-test"))
        assert provider.invoke("gpt-4o-mini", "x", 0.0, 300).tokens_used == 0

    def test_unconfigured_raises_unavailable(self):
        provider = OpenAIProvider(ProviderSettings("openai"))

        with pytest.raises(ProviderUnavailable) as excinfo:
            provider.invoke("gpt-4o-mini", "x", 0.0, 300)
        assert excinfo.value.status_code == 503

    @patch('ai_writing_guard.providers.openai_provider.OpenAI')
    def test_timeout_raises_provider_timeout(self, mock_openai_class):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = openai.APITimeoutError(request=request)
        mock_openai_class.return_value = mock_client

        provider = OpenAIProvider(ProviderSettings("openai", api_key="sk-test"))
        with pytest.raises(ProviderTimeout):
            provider.invoke("gpt-4o-mini", "x", 0.0, 300)

    @patch('ai_writing_guard.providers.openai_provider.OpenAI')
    def test_status_error_is_normalized(self, mock_openai_class):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        error = openai.InternalServerError(
            "upstream exploded",
            response=httpx.Response(502, request=request),
            body=None
        )
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = error
        mock_openai_class.return_value = mock_client

        provider = OpenAIProvider(ProviderSettings("openai", api_key="sk-test"))
        with pytest.raises(ProviderError) as excinfo:
            provider.invoke("gpt-4o-mini", "x", 0.0, 300)
        assert excinfo.value.status_code == 502
        assert excinfo.value.__cause__ is error


class TestGeminiProvider:
    """Test Gemini client wrapper."""

    @patch('ai_writing_guard.providers.gemini_provider.genai')
    def test_invoke_success(self, mock_genai):
        mock_client = Mock()
        mock_client.models.generate_content.return_value = SimpleNamespace(
            text="Gemini says hi",
            usage_metadata=SimpleNamespace(total_token_count=64)
        )
        mock_genai.Client.return_value = mock_client

        provider = GeminiProvider(ProviderSettings("gemini", api_key="g-key"))
        response = provider.invoke("gemini-flash-latest", "prompt", 0.7, 600)

        call = mock_client.models.generate_content.call_args
        assert call.kwargs["model"] == "gemini-flash-latest"
        assert call.kwargs["contents"] == "prompt"
        assert call.kwargs["config"].temperature == 0.7
        assert call.kwargs["config"].max_output_tokens == 600
        assert response.text == "Gemini says hi"
        assert response.tokens_used == 64

    @patch('ai_writing_guard.providers.gemini_provider.genai')
    def test_empty_response_returns_empty_text(self, mock_genai):
        mock_client = Mock()
        mock_client.models.generate_content.return_value = SimpleNamespace(text=None)
        mock_genai.Client.return_value = mock_client

        provider = GeminiProvider(ProviderSettings("gemini", api_key="g-key"))
        response = provider.invoke("gemini-flash-latest", "prompt", 0.7, 600)

        assert response.text == ""
        assert response.tokens_used == 0

    @patch('ai_writing_guard.providers.gemini_provider.genai')
    def test_client_init_failure_is_unavailable(self, mock_genai):
        mock_genai.Client.side_effect = RuntimeError("bad credentials file")

        provider = GeminiProvider(ProviderSettings("gemini", api_key="g-key"))
        with pytest.raises(ProviderUnavailable):
            provider.invoke("gemini-flash-latest", "prompt", 0.7, 600)

    def test_unconfigured_raises_unavailable(self):
        provider = GeminiProvider(ProviderSettings("gemini"))

        with pytest.raises(ProviderUnavailable, match="GENAI_API_KEY"):
            provider.invoke("gemini-flash-latest", "prompt", 0.7, 600)

    @patch('ai_writing_guard.providers.gemini_provider.genai')
    def test_quota_error_becomes_429(self, mock_genai):
        mock_client = Mock()
        mock_client.models.generate_content.side_effect = UpstreamError(
            "Resource exhausted: quota exceeded", code=400
        )
        mock_genai.Client.return_value = mock_client

        provider = GeminiProvider(ProviderSettings("gemini", api_key="g-key"))
        with pytest.raises(ProviderError) as excinfo:
            provider.invoke("gemini-flash-latest", "prompt", 0.7, 600)
        assert excinfo.value.status_code == 429

    @patch('ai_writing_guard.providers.gemini_provider.genai')
    def test_timeout_raises_provider_timeout(self, mock_genai):
        mock_client = Mock()
        mock_client.models.generate_content.side_effect = httpx.ReadTimeout("slow")
        mock_genai.Client.return_value = mock_client

        provider = GeminiProvider(ProviderSettings("gemini", api_key="g-key"))
        with pytest.raises(ProviderTimeout) as excinfo:
            provider.invoke("gemini-flash-latest", "prompt", 0.7, 600)
        assert excinfo.value.status_code == 504
