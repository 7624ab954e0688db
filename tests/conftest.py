"""Shared pytest fixtures."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import AppConfig, DefaultsConfig, ModelConfig, ServerConfig
from duochat.gateway import DispatchGateway
from duochat.models import ModelResponse, Reply
from duochat.providers.base import AIProvider
from duochat.transport import Transport


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="claude",
        sdk="anthropic",
        model="claude-sonnet-4-20250514",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
    )


@pytest.fixture
def sample_app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        defaults=DefaultsConfig(active_backend="claude", merge_policy="shared"),
        models={
            "claude": ModelConfig(
                name="claude",
                sdk="anthropic",
                model="claude-sonnet-4-20250514",
                api_key_env="ANTHROPIC_API_KEY",
                timeout_sec=60,
                max_tokens=1024,
            ),
            "chatgpt": ModelConfig(
                name="chatgpt",
                sdk="openai",
                model="gpt-4o-mini",
                api_key_env="OPENAI_API_KEY",
                timeout_sec=60,
                max_tokens=1024,
                system_prompt="Please format your responses using markdown.",
            ),
        },
        server=ServerConfig(),
        available_providers={"claude", "chatgpt"},
    )


def model_response(provider: str, content: str) -> ModelResponse:
    return ModelResponse(
        provider=provider,
        model="mock-model",
        content=content,
        latency_sec=0.1,
        token_count=10,
    )


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(self, provider_name: str = "claude", response_content: str = "Mock response") -> None:
        self._name = provider_name
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because generate is defined in the class body below.
        self.generate = AsyncMock(return_value=model_response(provider_name, response_content))  # type: ignore[assignment]

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def generate(self, prompt: str) -> ModelResponse:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return model_response(self._name, self._response_content)


class FakeTransport(Transport):
    """Scripted transport. Outcomes per backend are a Reply or an exception to raise.

    hold(backend) makes that backend's call wait until the returned event is set.
    """

    def __init__(self, outcomes: dict[str, Reply | Exception] | None = None) -> None:
        self.outcomes = dict(outcomes or {})
        self.calls: list[tuple[str, str]] = []
        self._gates: dict[str, asyncio.Event] = {}
        self.closed = False

    def hold(self, backend: str) -> asyncio.Event:
        self._gates[backend] = asyncio.Event()
        return self._gates[backend]

    async def send(self, message: str, target: str) -> Reply:
        self.calls.append((message, target))
        gate = self._gates.get(target)
        if gate is not None:
            await gate.wait()
        outcome = self.outcomes.get(target, Reply(backend=target, text=f"Hi from {target}"))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        self.closed = True


async def drain(turns: int = 10) -> None:
    """Let pending callbacks on the event loop run."""
    for _ in range(turns):
        await asyncio.sleep(0)


@pytest.fixture
def two_mock_providers() -> dict[str, MockProvider]:
    return {
        "claude": MockProvider("claude", "Hi Claude"),
        "chatgpt": MockProvider("chatgpt", "Hi GPT"),
    }


@pytest.fixture
def gateway(two_mock_providers: dict[str, MockProvider]) -> DispatchGateway:
    return DispatchGateway(two_mock_providers)


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()
