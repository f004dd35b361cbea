"""
LLM Provider Base - Abstract base for all LLM API providers.
Supports multimodal messages (text + images + PDF documents).
"""

import json
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List, Union
from dataclasses import dataclass, field


@dataclass
class LLMMessage:
    """
    Represents a message in a conversation.
    Supports multimodal content (text, images and PDF files).
    """
    role: str  # "system", "user", "assistant"
    content: Union[str, List[Dict[str, Any]]]  # text or multimodal content blocks

    @staticmethod
    def text(role: str, text: str) -> "LLMMessage":
        """Create a text-only message."""
        return LLMMessage(role=role, content=text)

    @staticmethod
    def multimodal(role: str, text: str, image_urls: Optional[List[str]] = None,
                   file_base64_list: Optional[List[Dict[str, str]]] = None) -> "LLMMessage":
        """
        Create a multimodal message with text and attachments.

        Args:
            role: Message role
            text: Text content
            image_urls: List of image URLs
            file_base64_list: List of dicts with 'data' (base64 string) and 'media_type'.
                PDFs become file parts, everything else an image part.
        """
        content_parts: List[Dict[str, Any]] = []

        # Attachments first
        if image_urls:
            for url in image_urls:
                content_parts.append({
                    "type": "image_url",
                    "image_url": {"url": url}
                })

        if file_base64_list:
            for item in file_base64_list:
                data_uri = f"data:{item['media_type']};base64,{item['data']}"
                if item["media_type"] == "application/pdf":
                    content_parts.append({
                        "type": "file",
                        "file": {"filename": item.get("filename", "document.pdf"), "file_data": data_uri}
                    })
                else:
                    content_parts.append({
                        "type": "image_url",
                        "image_url": {"url": data_uri}
                    })

        content_parts.append({"type": "text", "text": text})

        return LLMMessage(role=role, content=content_parts)


@dataclass
class LLMResponse:
    """Response from an LLM API call."""
    content: str
    model: str = ""
    usage: Dict[str, int] = field(default_factory=dict)
    raw: Optional[Dict[str, Any]] = None


class LLMProvider(ABC):
    """
    Abstract base class for LLM API providers.
    All providers must implement chat_completion.
    """

    name: str = "base"

    def __init__(self, api_key: str, model: str, base_url: Optional[str] = None,
                 default_temperature: float = 0.0, default_max_tokens: int = 4096):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
        **kwargs
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: List of conversation messages (supports multimodal)
            temperature: Sampling temperature override
            max_tokens: Max tokens override
            json_mode: Ask the model for a single JSON object
            **kwargs: Additional provider-specific parameters

        Returns:
            LLMResponse with the generated content
        """
        pass

    def _format_messages(self, messages: List[LLMMessage]) -> List[Dict[str, Any]]:
        """Convert LLMMessage list to API-compatible format."""
        return [{"role": m.role, "content": m.content} for m in messages]


def parse_json_object(content: str) -> Dict[str, Any]:
    """
    Parse a JSON-mode completion into a dict.

    Raises:
        ValueError: If the content is not a JSON object
    """
    text = (content or "").strip()
    # Some models wrap JSON mode output in a markdown fence anyway
    if text.startswith("```"):
        text = text.strip("`").strip()
        if text.lower().startswith("json"):
            text = text[4:]
    parsed = json.loads(text)
    if not isinstance(parsed, dict):
        raise ValueError("Expected a JSON object")
    return parsed
