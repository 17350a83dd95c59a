"""Unit tests for streaming LLM provider adapters — OpenAI, Anthropic, Ollama."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import openai
import pytest

from docqa.config.settings import Settings
from docqa.utils.errors import ConfigurationError, GenerationError

_MESSAGES = [
    {"role": "system", "content": "Answer from context."},
    {"role": "user", "content": "What grew?"},
]


def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_chat_model": "",
        "anthropic_api_key": "sk-ant-test",
        "anthropic_model": "",
        "ollama_base_url": "http://localhost:11434",
        "ollama_chat_model": "",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _chunk(content: str | None) -> MagicMock:
    chunk = MagicMock()
    chunk.choices = [MagicMock(delta=MagicMock(content=content))]
    return chunk


class _FakeCompletionStream:
    """Async-iterable stand-in for an OpenAI streaming response."""

    def __init__(self, chunks: list[MagicMock], error: Exception | None = None) -> None:
        self._chunks = chunks
        self._error = error
        self.close = AsyncMock()

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk
        if self._error is not None:
            raise self._error


class _FakeAnthropicStream:
    def __init__(self, texts: list[str]) -> None:
        self._texts = texts

    @property
    async def text_stream(self):
        for text in self._texts:
            yield text


class _FakeStreamManager:
    def __init__(self, texts: list[str]) -> None:
        self._stream = _FakeAnthropicStream(texts)
        self.exited = False

    async def __aenter__(self) -> _FakeAnthropicStream:
        return self._stream

    async def __aexit__(self, *exc_info) -> None:
        self.exited = True


async def _collect(iterator) -> list[str]:
    return [fragment async for fragment in iterator]


# ======================================================================
# OpenAI
# ======================================================================


class TestOpenAILLMProvider:
    def test_metadata(self) -> None:
        from docqa.providers.llm.openai_provider import OpenAILLMProvider

        provider = OpenAILLMProvider(_settings())
        assert provider.get_provider_name() == "openai"
        assert provider.is_available() is True
        assert OpenAILLMProvider(_settings(openai_api_key="")).is_available() is False

    def test_compatible_label(self) -> None:
        from docqa.providers.llm.openai_provider import OpenAILLMProvider

        provider = OpenAILLMProvider(_settings(openai_base_url="https://api.together.xyz/v1"))
        assert provider.get_provider_name() == "openai-compatible"

    @pytest.mark.asyncio
    async def test_no_client_without_key(self) -> None:
        from docqa.providers.llm.openai_provider import OpenAILLMProvider

        with patch("docqa.providers.llm.openai_provider.openai.AsyncOpenAI") as mock_cls:
            provider = OpenAILLMProvider(_settings(openai_api_key=""))
            with pytest.raises(ConfigurationError):
                async for _ in provider.stream_chat(_MESSAGES):
                    pass
        mock_cls.assert_not_called()
        assert provider.is_available() is False

    @pytest.mark.asyncio
    async def test_streams_non_empty_deltas(self) -> None:
        from docqa.providers.llm.openai_provider import OpenAILLMProvider

        stream = _FakeCompletionStream([_chunk("Hel"), _chunk(None), _chunk(""), _chunk("lo")])
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=stream)

        with patch("docqa.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(_settings())
            fragments = await _collect(provider.stream_chat(_MESSAGES, temperature=0.3, max_tokens=2048))

        assert fragments == ["Hel", "lo"]
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["stream"] is True
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 2048
        assert kwargs["messages"] == _MESSAGES
        stream.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_early_close_closes_http_stream(self) -> None:
        from docqa.providers.llm.openai_provider import OpenAILLMProvider

        stream = _FakeCompletionStream([_chunk("a"), _chunk("b"), _chunk("c")])
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=stream)

        with patch("docqa.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(_settings())
            fragments = provider.stream_chat(_MESSAGES)
            assert await fragments.__anext__() == "a"
            await fragments.aclose()

        stream.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_error_wrapped(self) -> None:
        from docqa.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.APIError(message="Rate limit exceeded", request=MagicMock(), body=None)
        )

        with patch("docqa.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(_settings())
            with pytest.raises(GenerationError):
                await _collect(provider.stream_chat(_MESSAGES))

    @pytest.mark.asyncio
    async def test_mid_stream_error_wrapped(self) -> None:
        from docqa.providers.llm.openai_provider import OpenAILLMProvider

        stream = _FakeCompletionStream(
            [_chunk("partial")],
            error=openai.APIError(message="connection reset", request=MagicMock(), body=None),
        )
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=stream)

        received: list[str] = []
        with patch("docqa.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(_settings())
            with pytest.raises(GenerationError):
                async for fragment in provider.stream_chat(_MESSAGES):
                    received.append(fragment)

        assert received == ["partial"]
        stream.close.assert_awaited_once()


# ======================================================================
# Anthropic
# ======================================================================


class TestAnthropicLLMProvider:
    def test_metadata(self) -> None:
        from docqa.providers.llm.anthropic_provider import AnthropicLLMProvider

        provider = AnthropicLLMProvider(_settings())
        assert provider.get_provider_name() == "anthropic"
        assert provider.is_available() is True
        assert AnthropicLLMProvider(_settings(anthropic_api_key="")).is_available() is False

    def test_split_system_moves_system_prompt(self) -> None:
        from docqa.providers.llm.anthropic_provider import _split_system

        system, turns = _split_system(
            [
                {"role": "system", "content": "Be brief."},
                {"role": "assistant", "content": "Earlier answer."},
                {"role": "user", "content": "Question?"},
            ]
        )
        assert system == "Be brief."
        assert turns == [{"role": "user", "content": "Question?"}]

    @pytest.mark.asyncio
    async def test_streams_text(self) -> None:
        from docqa.providers.llm.anthropic_provider import AnthropicLLMProvider

        manager = _FakeStreamManager(["The ", "answer"])
        mock_client = MagicMock()
        mock_client.messages.stream = MagicMock(return_value=manager)

        with patch(
            "docqa.providers.llm.anthropic_provider.anthropic.AsyncAnthropic",
            return_value=mock_client,
        ):
            provider = AnthropicLLMProvider(_settings())
            fragments = await _collect(provider.stream_chat(_MESSAGES, temperature=0.3, max_tokens=512))

        assert fragments == ["The ", "answer"]
        assert manager.exited is True
        kwargs = mock_client.messages.stream.call_args.kwargs
        assert kwargs["system"] == "Answer from context."
        assert kwargs["messages"] == [{"role": "user", "content": "What grew?"}]
        assert kwargs["model"] == "claude-sonnet-4-20250514"
        assert kwargs["max_tokens"] == 512

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self) -> None:
        from docqa.providers.llm.anthropic_provider import AnthropicLLMProvider

        mock_client = MagicMock()
        mock_client.messages.stream = MagicMock(
            side_effect=anthropic.APIError(message="overloaded", request=MagicMock(), body=None)
        )

        with patch(
            "docqa.providers.llm.anthropic_provider.anthropic.AsyncAnthropic",
            return_value=mock_client,
        ):
            provider = AnthropicLLMProvider(_settings())
            with pytest.raises(GenerationError):
                await _collect(provider.stream_chat(_MESSAGES))


# ======================================================================
# Ollama
# ======================================================================


class TestOllamaLLMProvider:
    def test_metadata(self) -> None:
        from docqa.providers.llm.ollama_provider import OllamaLLMProvider

        provider = OllamaLLMProvider(_settings())
        assert provider.get_provider_name() == "ollama"
        assert provider.is_available() is True

    @pytest.mark.asyncio
    async def test_streams_through_openai_protocol(self) -> None:
        from docqa.providers.llm.ollama_provider import OllamaLLMProvider

        stream = _FakeCompletionStream([_chunk("local"), _chunk(" answer")])
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=stream)

        with patch(
            "docqa.providers.llm.ollama_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ) as mock_cls:
            provider = OllamaLLMProvider(_settings())
            fragments = await _collect(provider.stream_chat(_MESSAGES))

        assert fragments == ["local", " answer"]
        assert mock_cls.call_args.kwargs["base_url"] == "http://localhost:11434/v1"
        assert mock_client.chat.completions.create.call_args.kwargs["model"] == "llama3.1"
