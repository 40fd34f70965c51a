"""Tests for the responses service (dispatcher, single-shot calls, polling)."""

import asyncio
import json
import threading
import time

import httpx
import pytest

from llmwire import (
    AbortController,
    AbortError,
    Client,
    OutputTextDeltaEvent,
    Response,
    ResponseRequest,
    StreamSession,
)
from llmwire.errors import (
    APIError,
    APIStatusError,
    RequestError,
    ResponseFailedError,
    TransportError,
)


def delta(text: str) -> dict:
    return {"type": "response.output_text.delta", "delta": text}


RESPONSE_BODY = {
    "id": "resp_1",
    "object": "response",
    "status": "completed",
    "model": "gpt-4o-mini",
    "output": [
        {"type": "message", "role": "assistant", "content": [{"type": "output_text", "text": "4"}]}
    ],
    "usage": {"input_tokens": 10, "output_tokens": 1, "total_tokens": 11},
}


def sse_response(sse, *payloads: dict) -> httpx.Response:
    body = b"".join(sse(p) for p in payloads) + b"data: [DONE]\n\n"
    return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})


class TestStreamDispatch:
    def test_stream_request(self, make_client, sse):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return sse_response(sse, delta("He"), delta("llo"))

        client = make_client(handler)
        session = client.responses.stream(ResponseRequest(input="hi"))

        assert isinstance(session, StreamSession)
        assert session.output_text() == "Hello"

        (request,) = seen
        assert request.method == "POST"
        assert str(request.url) == "https://api.test/v1/responses"
        assert request.headers["authorization"] == "Bearer sk-test"
        assert request.headers["content-type"] == "application/json"
        assert request.headers["accept"] == "text/event-stream"
        body = json.loads(request.content)
        assert body["stream"] is True
        assert body["input"] == "hi"

    def test_handshake_timeout_then_unbounded_body(self, make_client, sse):
        seen = []

        def handler(request):
            seen.append(dict(request.extensions["timeout"]))
            return sse_response(sse)

        client = make_client(handler, timeout=5)
        response = client.transport.open_stream("v1/responses", {"input": "hi", "stream": True})
        try:
            assert seen[0]["read"] == 5
            assert seen[0]["connect"] == 5
            assert response.request.extensions["timeout"]["read"] is None
        finally:
            response.close()

    def test_abort_during_handshake(self, make_client):
        started = threading.Event()
        release = threading.Event()

        def silent_server(request):
            started.set()
            release.wait(10)
            return httpx.Response(200, content=b"")

        client = make_client(silent_server)
        controller = AbortController()

        def abort_once_sent():
            if started.wait(5):
                controller.abort("user")

        aborter = threading.Thread(target=abort_once_sent)
        aborter.start()
        begun = time.monotonic()
        try:
            with pytest.raises(AbortError, match="user"):
                client.responses.stream(ResponseRequest(input="hi"), signal=controller.signal)
            assert time.monotonic() - begun < 5
        finally:
            release.set()
            aborter.join()

    def test_create_routes_on_stream_flag(self, make_client, sse):
        def handler(request):
            if json.loads(request.content).get("stream"):
                return sse_response(sse, delta("x"))
            return httpx.Response(200, json=RESPONSE_BODY)

        client = make_client(handler)
        assert isinstance(client.responses.create(ResponseRequest(input="a", stream=True)), StreamSession)
        assert isinstance(client.responses.create(ResponseRequest(input="a")), Response)

    def test_rate_limited_handshake(self, make_client):
        def handler(request):
            return httpx.Response(429, json={"error": {"message": "rate limit"}})

        client = make_client(handler)
        with pytest.raises(APIStatusError) as exc_info:
            client.responses.stream(ResponseRequest(input="hi"))

        err = exc_info.value
        assert err.status_code == 429
        assert err.message == "rate limit"
        assert "rate limit" in err.body

    def test_error_body_is_bounded(self, make_client):
        def handler(request):
            return httpx.Response(500, content=b"x" * 1000)

        client = make_client(handler, max_error_body=10)
        with pytest.raises(APIStatusError) as exc_info:
            client.responses.stream(ResponseRequest(input="hi"))
        assert exc_info.value.body == "x" * 10

    def test_connect_error(self, make_client):
        def handler(request):
            raise httpx.ConnectError("refused")

        with pytest.raises(TransportError, match="refused"):
            make_client(handler).responses.stream(ResponseRequest(input="hi"))

    def test_aborted_before_handshake(self, make_client):
        calls = []
        client = make_client(lambda request: calls.append(request) or httpx.Response(200))
        controller = AbortController()
        controller.abort()

        with pytest.raises(AbortError):
            client.responses.stream(ResponseRequest(input="hi"), signal=controller.signal)
        assert calls == []

    def test_signal_cancels_stream(self, make_client, sse):
        release = threading.Event()

        def body():
            yield sse(delta("a"))
            release.wait(5)
            yield sse(delta("b"))

        client = make_client(lambda request: httpx.Response(200, content=body()))
        controller = AbortController()
        session = client.responses.stream(ResponseRequest(input="hi"), signal=controller.signal)

        controller.abort()
        release.set()
        session.collect()
        assert isinstance(session.err(), AbortError)


class TestAsyncStreamDispatch:
    @pytest.mark.asyncio
    async def test_astream(self, make_client, sse):
        client = make_client(lambda request: sse_response(sse, delta("He"), delta("llo")))
        session = await client.responses.astream(ResponseRequest(input="hi"))
        events = await session.collect()

        assert [e.delta for e in events if isinstance(e, OutputTextDeltaEvent)] == ["He", "llo"]
        assert session.err() is None

    @pytest.mark.asyncio
    async def test_astream_status_error(self, make_client):
        client = make_client(lambda request: httpx.Response(429, json={"error": {"message": "rate limit"}}))
        with pytest.raises(APIStatusError, match="rate limit"):
            await client.responses.astream(ResponseRequest(input="hi"))

    @pytest.mark.asyncio
    async def test_abort_during_handshake(self, config):
        started = asyncio.Event()

        async def slow_handler(request):
            started.set()
            await asyncio.sleep(30)
            return httpx.Response(200)

        client = Client(
            config,
            http_client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200))),
            async_http_client=httpx.AsyncClient(transport=httpx.MockTransport(slow_handler)),
        )
        controller = AbortController()
        task = asyncio.create_task(
            client.responses.astream(ResponseRequest(input="hi"), signal=controller.signal)
        )
        await asyncio.wait_for(started.wait(), 5)
        controller.abort("user")

        with pytest.raises(AbortError, match="user"):
            await asyncio.wait_for(task, 5)


class TestSingleShot:
    def test_send(self, make_client):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json=RESPONSE_BODY)

        response = make_client(handler).responses.send(
            ResponseRequest(input="2+2?", instructions="Be terse.")
        )

        assert response.text == "4"
        assert response.usage.total_tokens == 11
        assert seen[0] == {"model": "gpt-4o-mini", "input": "2+2?", "instructions": "Be terse."}

    def test_send_rejects_stream_flag(self, make_client):
        client = make_client(lambda request: httpx.Response(200, json=RESPONSE_BODY))
        with pytest.raises(RequestError):
            client.responses.send(ResponseRequest(input="x", stream=True))

    def test_error_object_in_success_body(self, make_client):
        body = {"error": {"message": "model overloaded", "type": "server_error", "code": 503}}
        client = make_client(lambda request: httpx.Response(200, json=body))

        with pytest.raises(APIError) as exc_info:
            client.responses.send(ResponseRequest(input="x"))
        assert exc_info.value.message == "model overloaded"
        assert exc_info.value.code == "503"

    def test_invalid_json_body(self, make_client):
        client = make_client(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(TransportError, match="not valid JSON"):
            client.responses.send(ResponseRequest(input="x"))

    def test_retrieve_delete_cancel(self, make_client):
        seen = []

        def handler(request):
            seen.append((request.method, request.url.path))
            if request.method == "DELETE":
                return httpx.Response(200, json={"id": "resp_1", "deleted": True})
            return httpx.Response(200, json={**RESPONSE_BODY, "status": "cancelled"})

        client = make_client(handler)
        assert client.responses.retrieve("resp_1").id == "resp_1"
        assert client.responses.delete("resp_1") is True
        assert client.responses.cancel("resp_1").status == "cancelled"
        assert seen == [
            ("GET", "/v1/responses/resp_1"),
            ("DELETE", "/v1/responses/resp_1"),
            ("POST", "/v1/responses/resp_1/cancel"),
        ]

    @pytest.mark.asyncio
    async def test_asend(self, make_client):
        client = make_client(lambda request: httpx.Response(200, json=RESPONSE_BODY))
        response = await client.responses.asend(ResponseRequest(input="2+2?"))
        assert response.text == "4"


class TestPoll:
    def test_poll_until_completed(self, make_client):
        statuses = iter(["queued", "in_progress", "completed"])
        client = make_client(
            lambda request: httpx.Response(200, json={**RESPONSE_BODY, "status": next(statuses)})
        )
        response = client.responses.poll("resp_1", interval=0)
        assert response.status == "completed"

    def test_poll_failed(self, make_client):
        body = {"id": "resp_1", "status": "failed"}
        client = make_client(lambda request: httpx.Response(200, json=body))
        with pytest.raises(ResponseFailedError, match="resp_1 failed"):
            client.responses.poll("resp_1", interval=0)

    def test_poll_aborted(self, make_client):
        client = make_client(lambda request: httpx.Response(200, json={"id": "r", "status": "queued"}))
        controller = AbortController()
        controller.abort()
        with pytest.raises(AbortError):
            client.responses.poll("r", interval=0, signal=controller.signal)

    def test_poll_timeout(self, make_client):
        client = make_client(lambda request: httpx.Response(200, json={"id": "r", "status": "queued"}))
        with pytest.raises(TimeoutError):
            client.responses.poll("r", interval=0.05, timeout=0.01)
