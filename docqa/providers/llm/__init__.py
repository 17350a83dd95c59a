"""Streaming LLM provider adapters.

Three concrete implementations of ILLMProvider (docqa/interfaces/llm_provider.py):
    - AnthropicLLMProvider — Claude Sonnet via messages.stream
    - OpenAILLMProvider    — gpt-4o (also any OpenAI-compatible API)
    - OllamaLLMProvider    — local models via the Ollama server

main.py picks the first configured one in that order.
"""

from docqa.providers.llm.anthropic_provider import AnthropicLLMProvider
from docqa.providers.llm.ollama_provider import OllamaLLMProvider
from docqa.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["AnthropicLLMProvider", "OllamaLLMProvider", "OpenAILLMProvider"]
