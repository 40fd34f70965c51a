"""Pytest configuration."""

import json

import httpx
import pytest

from llmwire import Client, ClientConfig


def pytest_addoption(parser):
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests (requires API keys)",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: mark test as integration test")


def pytest_collection_modifyitems(config, items):
    if not config.getoption("--run-integration"):
        skip_integration = pytest.mark.skip(reason="Need --run-integration to run")
        for item in items:
            if "test_integration" in item.nodeid:
                item.add_marker(skip_integration)


def encode_sse(payload: dict | str, event: str | None = None) -> bytes:
    """One SSE frame; the event name defaults to the payload's ``type``."""
    if isinstance(payload, dict):
        data = json.dumps(payload)
        event = event if event is not None else payload.get("type")
    else:
        data = payload
    head = f"event: {event}\n" if event else ""
    return f"{head}data: {data}\n\n".encode()


@pytest.fixture
def sse():
    return encode_sse


@pytest.fixture
def config():
    return ClientConfig(api_key="sk-test", base_url="https://api.test/")


@pytest.fixture
def make_client(config):
    """Build a Client whose HTTP requests go to ``handler`` (httpx.MockTransport)."""
    clients = []

    def factory(handler, **overrides):
        cfg = config.model_copy(update=overrides)
        transport = httpx.MockTransport(handler)
        client = Client(
            cfg,
            http_client=httpx.Client(transport=transport),
            async_http_client=httpx.AsyncClient(transport=transport),
        )
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()
