"""
Pytest configuration and fixtures for the Dify stream client test suite.
"""

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from dify_stream.core.config_manager import ConfigManager
from dify_stream.services.chat.models import StreamingCallbacks

TEST_BASE_URL = "https://dify.test"
TEST_API_KEY = "app-test-key-123456"


class FakeClock:
    """Manually advanced time source, in seconds."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingCallbacks:
    """Collects every streaming callback invocation in order."""

    def __init__(self):
        self.events: List[tuple] = []
        self.messages: List[str] = []
        self.progress: List[float] = []
        self.results = []
        self.errors = []

    def as_callbacks(self, on_message: Callable[[str], None] = None) -> StreamingCallbacks:
        def handle_message(text):
            self.events.append(("message", text))
            self.messages.append(text)
            if on_message:
                on_message(text)

        def handle_complete(result):
            self.events.append(("complete", result))
            self.results.append(result)

        def handle_error(error):
            self.events.append(("error", error))
            self.errors.append(error)

        def handle_progress(value):
            self.events.append(("progress", value))
            self.progress.append(value)

        return StreamingCallbacks(
            on_message=handle_message,
            on_complete=handle_complete,
            on_error=handle_error,
            on_start=lambda: self.events.append(("start", None)),
            on_progress=handle_progress,
        )

    @property
    def kinds(self) -> List[str]:
        return [kind for kind, _ in self.events]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep developer environment variables out of the tests."""
    for name in ("DIFY_API_BASE_URL", "DIFY_API_KEY", "DIFY_TIMEOUT", "DEBUG"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_config(tmp_path) -> Callable[..., ConfigManager]:
    """Build a ConfigManager over an empty config dir with the given overrides."""
    def _make(**sections: Dict[str, Any]) -> ConfigManager:
        overrides = {"dify": {"base_url": TEST_BASE_URL, "api_key": TEST_API_KEY}}
        for section, values in sections.items():
            overrides.setdefault(section, {}).update(values)
        return ConfigManager(config_dir=str(tmp_path), overrides=overrides)
    return _make


@pytest.fixture
def config_manager(make_config) -> ConfigManager:
    return make_config()


@pytest.fixture
def recorder() -> RecordingCallbacks:
    return RecordingCallbacks()


@pytest.fixture
def make_recorder() -> Callable[[], RecordingCallbacks]:
    """For tests that need more than one independent set of callbacks."""
    return RecordingCallbacks


@pytest.fixture
def sse_body() -> Callable[..., bytes]:
    """Encode payloads as `data: <json>` lines."""
    def _encode(*payloads: Dict[str, Any], done: bool = False) -> bytes:
        lines = [f"data: {json.dumps(payload, ensure_ascii=False)}\n" for payload in payloads]
        if done:
            lines.append("data: [DONE]\n")
        return "".join(lines).encode("utf-8")
    return _encode


@pytest.fixture
def mock_client() -> Callable[[Callable], httpx.AsyncClient]:
    """Async client whose requests are answered by `handler` instead of the network."""
    def _make(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return _make
