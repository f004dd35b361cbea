"""LLM module - provides unified interface for LLM API providers."""

from .base import LLMProvider, LLMMessage, LLMResponse, parse_json_object
from .openai_provider import OpenAIProvider
from .gemini_provider import GeminiProvider
from .factory import create_llm_provider

__all__ = [
    'LLMProvider',
    'LLMMessage',
    'LLMResponse',
    'parse_json_object',
    'OpenAIProvider',
    'GeminiProvider',
    'create_llm_provider',
]
