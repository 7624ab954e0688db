"""Tests for the HTTP boundary in duochat/api.py."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from duochat.api import create_app
from duochat.gateway import DispatchGateway
from duochat.providers.base import ProviderError
from tests.conftest import MockProvider


@pytest.fixture
def client(gateway) -> TestClient:
    return TestClient(create_app(gateway))


def test_chat_success_envelope(client):
    resp = client.post("/api/chat", json={"message": "hello", "target": "claude"})
    assert resp.status_code == 200
    assert resp.json() == {"response": "Hi Claude"}


def test_chat_empty_message(client):
    resp = client.post("/api/chat", json={"message": "", "target": "claude"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Message is required"}


def test_chat_missing_message(client):
    resp = client.post("/api/chat", json={"target": "chatgpt"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Message is required"}


def test_chat_invalid_target(client):
    resp = client.post("/api/chat", json={"message": "hello", "target": "gemini"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid chatbot specified"}


def test_chat_provider_status_passed_through(client, two_mock_providers):
    two_mock_providers["chatgpt"].generate = AsyncMock(
        side_effect=ProviderError("chatgpt", "Rate limit exceeded", 429)
    )
    resp = client.post("/api/chat", json={"message": "hello", "target": "chatgpt"})
    assert resp.status_code == 429
    assert resp.json() == {"error": "Rate limit exceeded"}


def test_chat_provider_without_status_defaults_to_500(client, two_mock_providers):
    two_mock_providers["claude"].generate = AsyncMock(side_effect=ProviderError("claude", "boom"))
    resp = client.post("/api/chat", json={"message": "hello", "target": "claude"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "boom"}


def test_chat_unexpected_error_is_internal_server_error(client, two_mock_providers):
    two_mock_providers["claude"].generate = AsyncMock(side_effect=RuntimeError("bug"))
    resp = client.post("/api/chat", json={"message": "hello", "target": "claude"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


def test_chat_malformed_body(client):
    resp = client.post(
        "/api/chat", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_chat_wrong_field_type(client):
    resp = client.post("/api/chat", json={"message": ["hello"], "target": "claude"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid request body"}


def test_chat_unconfigured_backend():
    client = TestClient(create_app(DispatchGateway({"claude": MockProvider("claude")})))
    resp = client.post("/api/chat", json={"message": "hello", "target": "chatgpt"})
    assert resp.status_code == 503
    assert resp.json() == {"error": "Backend not configured"}


def test_health_lists_configured_backends(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "backends": ["claude", "chatgpt"]}
