"""Integration tests for the LLM adapter layer."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.adapters.llm import OpenAIClient, create_llm_client
from app.core.config import LLMSettings
from app.core.errors import LLMAppError, ValidationAppError


def _completion(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    return response


class TestOpenAIClient:
    """OpenAI client with mocked API calls."""

    @pytest.mark.asyncio
    async def test_generate_reply_success(self) -> None:
        client = OpenAIClient(api_key="test-key-123", model="gpt-4o-mini")

        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            return_value=_completion("  Enable two-factor authentication.  "),
        ) as mock_create:
            reply = await client.generate_reply(
                "How do I secure my account?",
                system_prompt="You are a security assistant.",
                max_tokens=800,
                temperature=0.7,
            )

        assert reply == "Enable two-factor authentication."
        call_kwargs = mock_create.call_args.kwargs
        assert call_kwargs["model"] == "gpt-4o-mini"
        assert call_kwargs["max_tokens"] == 800
        assert call_kwargs["temperature"] == 0.7
        assert call_kwargs["messages"] == [
            {"role": "system", "content": "You are a security assistant."},
            {"role": "user", "content": "How do I secure my account?"},
        ]

    @pytest.mark.asyncio
    async def test_unknown_kwargs_are_not_forwarded(self) -> None:
        client = OpenAIClient(api_key="test-key", model="gpt-4o-mini")

        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            return_value=_completion("ok"),
        ) as mock_create:
            await client.generate_reply("hi", system_prompt="sys", stream=True)

        assert "stream" not in mock_create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_api_error_raises_llm_app_error(self) -> None:
        client = OpenAIClient(api_key="test-key", model="gpt-4o-mini")

        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            side_effect=Exception("API rate limit exceeded"),
        ):
            with pytest.raises(LLMAppError) as exc_info:
                await client.generate_reply("hi", system_prompt="sys")

        assert exc_info.value.code == "llm_api_error"
        assert "OpenAI API error" in exc_info.value.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [None, "", "   "])
    async def test_empty_reply_raises(self, content) -> None:
        client = OpenAIClient(api_key="test-key", model="gpt-4o-mini")

        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            return_value=_completion(content),
        ):
            with pytest.raises(LLMAppError) as exc_info:
                await client.generate_reply("hi", system_prompt="sys")

        assert exc_info.value.code == "llm_empty_response"


class TestLLMFactory:
    def test_creates_openai_client(self) -> None:
        client = create_llm_client(LLMSettings(provider="openai", model="gpt-4o-mini", api_key="k"))

        assert isinstance(client, OpenAIClient)
        assert client.model == "gpt-4o-mini"

    def test_provider_name_is_case_insensitive(self) -> None:
        client = create_llm_client(LLMSettings(provider="OpenAI", model="gpt-4o-mini", api_key="k"))

        assert isinstance(client, OpenAIClient)

    def test_returns_none_without_api_key(self) -> None:
        assert create_llm_client(LLMSettings(provider="openai", model="gpt-4o-mini", api_key=None)) is None

    def test_unknown_provider_raises(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            create_llm_client(LLMSettings(provider="unknown", model="x", api_key="k"))

        assert exc_info.value.code == "llm_unknown_provider"
