"""Integration tests - require API keys, run manually.

Run with: pytest tests/test_integration.py -v --run-integration
"""

import os

import pytest
from dotenv import load_dotenv

from llmwire import (
    AbortController,
    AbortError,
    Client,
    OutputTextDeltaEvent,
    ResponseCompletedEvent,
    ResponseRequest,
    TextOptions,
)

load_dotenv()

requires_key = pytest.mark.skipif(
    not os.getenv("OPENAI_API_KEY"),
    reason="OPENAI_API_KEY not set",
)


@pytest.fixture
def client():
    with Client() as client:
        yield client


@requires_key
class TestResponsesIntegration:
    def test_send_basic(self, client):
        response = client.responses.send(ResponseRequest(input="Say 'hello' and nothing else"))
        assert "hello" in response.text.lower()
        assert response.usage.total_tokens > 0

    def test_stream_basic(self, client):
        with client.responses.stream(ResponseRequest(input="Count from 1 to 5.")) as session:
            events = session.collect()

        assert session.err() is None
        assert any(isinstance(e, OutputTextDeltaEvent) for e in events)
        assert isinstance(events[-1], ResponseCompletedEvent)
        deltas = "".join(e.delta for e in events if isinstance(e, OutputTextDeltaEvent))
        assert deltas == events[-1].response.text

    def test_stream_cancel(self, client):
        controller = AbortController()
        session = client.responses.stream(
            ResponseRequest(input="Write a long story about a lighthouse."),
            signal=controller.signal,
        )
        for event in session:
            if isinstance(event, OutputTextDeltaEvent):
                controller.abort("enough")

        assert isinstance(session.err(), AbortError)

    def test_conversation_chaining(self, client):
        first = client.responses.send(ResponseRequest(input="My name is Ada. Reply 'ok'."))
        second = client.responses.send(
            ResponseRequest(input="What is my name?").follow_up(first, "What is my name?")
        )
        assert "ada" in second.text.lower()

    def test_json_schema(self, client):
        schema = {
            "type": "object",
            "properties": {"city": {"type": "string"}},
            "required": ["city"],
            "additionalProperties": False,
        }
        response = client.responses.send(
            ResponseRequest(
                input="Which city is the capital of France?",
                text=TextOptions.json_schema("capital", schema),
            )
        )
        assert "Paris" in response.text

    def test_moderation(self, client):
        assert client.moderation.check("I love sunny days").flagged is False
