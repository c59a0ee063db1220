from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from schemaforge.core.errors import ConfigurationError, UpstreamError
from schemaforge.generation.llm_client import LLMClient


def _mock_openai(content: str | None = None, *, side_effect=None):
    mock_message = MagicMock()
    mock_message.content = content

    mock_choice = MagicMock()
    mock_choice.message = mock_message

    mock_response = MagicMock()
    mock_response.choices = [mock_choice]

    mock_completions = MagicMock()
    mock_completions.create = AsyncMock(return_value=mock_response, side_effect=side_effect)

    mock_chat = MagicMock()
    mock_chat.completions = mock_completions

    mock_client_instance = AsyncMock()
    mock_client_instance.chat = mock_chat
    return mock_client_instance, mock_completions


@pytest.mark.asyncio
async def test_generate_text_returns_stripped_content():
    mock_client_instance, mock_completions = _mock_openai("  Table users {}\n")

    with patch("schemaforge.generation.llm_client.AsyncOpenAI", return_value=mock_client_instance):
        client = LLMClient(model_name="test-model", api_key="dummy_key")

        result = await client.generate_text("system", "Description: users", temperature=0.1)

    assert result == "Table users {}"
    mock_completions.create.assert_called_once()
    kwargs = mock_completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["temperature"] == 0.1
    assert kwargs["messages"][0] == {"role": "system", "content": "system"}


def test_missing_api_key_is_a_configuration_error():
    with patch("schemaforge.generation.llm_client.settings.LLM_API_KEY", None), patch(
        "schemaforge.generation.llm_client.settings.GEMINI_API_KEY", None
    ):
        with pytest.raises(ConfigurationError):
            LLMClient()


def test_gemini_key_is_used_as_fallback():
    with patch("schemaforge.generation.llm_client.AsyncOpenAI") as mock_openai, patch(
        "schemaforge.generation.llm_client.settings.LLM_API_KEY", None
    ), patch("schemaforge.generation.llm_client.settings.GEMINI_API_KEY", "gemini-key"):
        LLMClient()

    assert mock_openai.call_args.kwargs["api_key"] == "gemini-key"


@pytest.mark.asyncio
async def test_empty_completion_is_an_upstream_error():
    mock_client_instance, _ = _mock_openai("   ")

    with patch("schemaforge.generation.llm_client.AsyncOpenAI", return_value=mock_client_instance):
        client = LLMClient(api_key="dummy_key")
        with pytest.raises(UpstreamError) as excinfo:
            await client.generate_text("system", "user")

    assert "Empty response" in excinfo.value.message


@pytest.mark.asyncio
async def test_provider_status_is_carried_on_upstream_error():
    request = httpx.Request("POST", "https://example.invalid/chat/completions")
    response = httpx.Response(403, request=request)
    error = openai.PermissionDeniedError("Forbidden", response=response, body=None)
    mock_client_instance, _ = _mock_openai(side_effect=error)

    with patch("schemaforge.generation.llm_client.AsyncOpenAI", return_value=mock_client_instance):
        client = LLMClient(api_key="dummy_key")
        with pytest.raises(UpstreamError) as excinfo:
            await client.generate_text("system", "user")

    assert excinfo.value.status_code == 403
    assert excinfo.value.message.startswith("Gemini API Error")


@pytest.mark.asyncio
async def test_connection_failure_is_an_upstream_error():
    request = httpx.Request("POST", "https://example.invalid/chat/completions")
    mock_client_instance, _ = _mock_openai(side_effect=openai.APIConnectionError(request=request))

    with patch("schemaforge.generation.llm_client.AsyncOpenAI", return_value=mock_client_instance):
        client = LLMClient(api_key="dummy_key")
        with pytest.raises(UpstreamError) as excinfo:
            await client.generate_text("system", "user")

    assert excinfo.value.status_code == 502
