"""
Shared test fixtures and configuration.
"""

import json
import os
from typing import Callable, List, Optional, Union

import pytest

# Set test environment variables before importing app modules
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOCAL_STORAGE_PATH", "/tmp/healthpass_test_data")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_API_REQUESTS", "false")
os.environ.setdefault("LLM_API_KEY", "")

from healthpass.llm.base import LLMMessage, LLMProvider, LLMResponse  # noqa: E402
from healthpass.services import build_services  # noqa: E402
from healthpass.storage import Database, LocalStorage  # noqa: E402

Reply = Union[str, dict, Exception]


class FakeProvider(LLMProvider):
    """
    Scripted LLM provider.

    ``handler(prompt_text, json_mode)`` decides each reply when given;
    otherwise replies are taken from ``replies`` in order. A dict reply is sent
    as JSON and an exception reply is raised.
    """

    name = "fake"

    def __init__(self, replies: Optional[List[Reply]] = None,
                 handler: Optional[Callable[[str, bool], Reply]] = None):
        super().__init__(api_key="fake-key", model="fake-model")
        self.replies = list(replies or [])
        self.handler = handler
        self.calls: List[dict] = []

    async def chat_completion(self, messages: List[LLMMessage], temperature=None, max_tokens=None,
                              json_mode: bool = False, **kwargs) -> LLMResponse:
        content = messages[-1].content
        prompt = content if isinstance(content, str) else content[-1]["text"]
        self.calls.append({"prompt": prompt, "json_mode": json_mode, "messages": messages})

        reply = self.handler(prompt, json_mode) if self.handler else self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict):
            reply = json.dumps(reply)
        return LLMResponse(content=reply, model=self.model)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path / "data"))


@pytest.fixture
def db(storage):
    return Database(storage)


@pytest.fixture
def services(storage):
    """Services without an LLM provider: every AI feature uses its defaults."""
    return build_services(storage, None)


@pytest.fixture
def make_services(storage):
    """Build services around a scripted provider."""
    def _make(provider: Optional[LLMProvider] = None):
        return build_services(storage, provider)
    return _make


@pytest.fixture
def fake_provider():
    """The FakeProvider class, for tests that script model replies."""
    return FakeProvider
