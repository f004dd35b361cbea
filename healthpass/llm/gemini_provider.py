"""
Gemini LLM Provider.
Uses Google's OpenAI-compatible endpoint for Gemini models.
"""

from typing import Any, Dict, List

from .base import LLMMessage
from .openai_provider import OpenAIProvider


class GeminiProvider(OpenAIProvider):
    """
    Provider for Gemini through the OpenAI-compatible Chat Completions API.
    PDF file parts are sent as inline data URIs, which is how that endpoint
    accepts documents.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash-lite",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai",
        default_temperature: float = 0.0,
        default_max_tokens: int = 4096,
        timeout: float = 120.0,
    ):
        super().__init__(api_key, model, base_url, default_temperature, default_max_tokens, timeout)

    def _format_messages(self, messages: List[LLMMessage]) -> List[Dict[str, Any]]:
        formatted = []
        for m in messages:
            content = m.content
            if isinstance(content, list):
                content = [
                    {"type": "image_url", "image_url": {"url": part["file"]["file_data"]}}
                    if part.get("type") == "file" else part
                    for part in content
                ]
            formatted.append({"role": m.role, "content": content})
        return formatted
