"""Tests for the tool registry and automatic function-call execution."""

import json

import httpx
import pytest

from llmwire import DoNotRespond, FunctionTool, ResponseRequest, ToolRegistry
from llmwire.errors import ToolError

WEATHER_PARAMS = {
    "type": "object",
    "properties": {"city": {"type": "string"}},
    "required": ["city"],
}


def call_body(*calls: tuple[str, str, dict], message: str | None = None) -> dict:
    output = []
    if message is not None:
        output.append({"type": "message", "content": [{"type": "output_text", "text": message}]})
    for call_id, name, args in calls:
        output.append(
            {"type": "function_call", "call_id": call_id, "name": name, "arguments": json.dumps(args)}
        )
    return {"id": "resp_1", "status": "completed", "output": output}


def text_body(response_id: str, text: str) -> dict:
    return {
        "id": response_id,
        "status": "completed",
        "output": [{"type": "message", "content": [{"type": "output_text", "text": text}]}],
    }


def scripted(*bodies: dict, seen: list | None = None):
    remaining = list(bodies)

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(json.loads(request.content))
        return httpx.Response(200, json=remaining.pop(0))

    return handler


class TestToolRegistry:
    def test_register_and_definitions(self):
        registry = ToolRegistry()
        registry.register(FunctionTool(name="get_weather", description="Weather", parameters=WEATHER_PARAMS))

        assert "get_weather" in registry
        assert len(registry) == 1
        (tool,) = registry.definitions()
        assert tool.type == "function"
        assert tool.parameters == WEATHER_PARAMS

    def test_duplicate_name(self):
        registry = ToolRegistry()
        registry.register(FunctionTool(name="a", description="A"))
        with pytest.raises(ValueError, match="already registered"):
            registry.register(FunctionTool(name="a", description="again"))

    def test_invalid_name(self):
        with pytest.raises(ValueError, match="invalid tool name"):
            ToolRegistry().register(FunctionTool(name="has space", description="x"))

    def test_missing_description(self):
        with pytest.raises(ValueError, match="description"):
            ToolRegistry().register(FunctionTool(name="a", description=""))

    def test_decorator_keeps_function(self):
        registry = ToolRegistry()

        @registry.function(name="now", description="Current time")
        def now(params):
            return "noon"

        assert now({}) == "noon"
        assert registry.get("now").parameters == {"type": "object", "properties": {}}

    def test_unregister(self):
        registry = ToolRegistry()
        registry.register(FunctionTool(name="a", description="A"))
        registry.unregister("a")
        assert "a" not in registry
        with pytest.raises(KeyError):
            registry.unregister("a")

    def test_definitions_unknown_name(self):
        with pytest.raises(KeyError, match="missing"):
            ToolRegistry().definitions("missing")


class TestAutoExecution:
    def test_executes_and_follows_up(self, make_client):
        seen = []
        client = make_client(
            scripted(
                call_body(("call_1", "get_weather", {"city": "Paris"}), message="Checking."),
                text_body("resp_2", "Sunny in Paris"),
                seen=seen,
            )
        )

        @client.tools.function(name="get_weather", description="Weather", parameters=WEATHER_PARAMS)
        def get_weather(params):
            return f"Sunny in {params['city']}"

        response = client.responses.send(
            ResponseRequest(input="Weather?", tools=client.tools.definitions())
        )

        assert response.id == "resp_2"
        assert response.output_texts == ["Checking.", "Sunny in Paris"]
        assert response.function_calls == []
        follow_up = seen[1]
        assert follow_up["previous_response_id"] == "resp_1"
        assert follow_up["input"] == [
            {"type": "function_call_output", "call_id": "call_1", "output": "Sunny in Paris"}
        ]

    def test_non_string_result_is_json(self, make_client):
        seen = []
        client = make_client(
            scripted(call_body(("c", "stats", {})), text_body("resp_2", "ok"), seen=seen)
        )
        client.tools.register(FunctionTool(name="stats", description="Stats", fn=lambda p: {"n": 1}))

        client.responses.send(ResponseRequest(input="x"))
        assert seen[1]["input"][0]["output"] == '{"n": 1}'

    def test_return_tool_calls(self, make_client):
        seen = []
        client = make_client(scripted(call_body(("c", "get_weather", {"city": "Oslo"})), seen=seen))
        client.tools.register(
            FunctionTool(name="get_weather", description="Weather", fn=lambda p: "never")
        )

        response = client.responses.send(ResponseRequest(input="x", return_tool_calls=True))
        assert [c.name for c in response.function_calls] == ["get_weather"]
        assert len(seen) == 1
        assert "return_tool_calls" not in seen[0]

    def test_tool_without_function_is_returned(self, make_client):
        executed = []
        client = make_client(
            scripted(call_body(("c1", "auto", {}), ("c2", "manual", {})))
        )
        client.tools.register(FunctionTool(name="auto", description="A", fn=executed.append))
        client.tools.register(FunctionTool(name="manual", description="M"))

        response = client.responses.send(ResponseRequest(input="x"))
        assert len(response.function_calls) == 2
        assert executed == []

    def test_unregistered_tool(self, make_client):
        client = make_client(scripted(call_body(("c", "ghost", {}))))
        with pytest.raises(ToolError, match="ghost"):
            client.responses.send(ResponseRequest(input="x"))

    def test_function_failure(self, make_client):
        client = make_client(scripted(call_body(("c", "boom", {}))))

        @client.tools.function(name="boom", description="Fails")
        def boom(params):
            raise RuntimeError("kaput")

        with pytest.raises(ToolError, match="kaput") as exc_info:
            client.responses.send(ResponseRequest(input="x"))
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_invalid_arguments(self, make_client):
        body = call_body()
        body["output"].append({"type": "function_call", "call_id": "c", "name": "f", "arguments": "{"})
        client = make_client(scripted(body))
        client.tools.register(FunctionTool(name="f", description="F", fn=lambda p: "x"))

        with pytest.raises(ToolError, match="invalid arguments"):
            client.responses.send(ResponseRequest(input="x"))

    def test_do_not_respond_stops(self, make_client):
        seen = []
        client = make_client(scripted(call_body(("c", "notify", {})), seen=seen))

        @client.tools.function(name="notify", description="Send a notification")
        def notify(params):
            raise DoNotRespond

        response = client.responses.send(ResponseRequest(input="x"))
        assert response.id == "resp_1"
        assert len(seen) == 1

    def test_background_request_not_executed(self, make_client):
        client = make_client(scripted(call_body(("c", "ghost", {}))))
        response = client.responses.send(ResponseRequest(input="x", background=True))
        assert response.function_calls[0].name == "ghost"

    @pytest.mark.asyncio
    async def test_asend_executes(self, make_client):
        client = make_client(
            scripted(call_body(("c", "add", {"a": 2, "b": 3})), text_body("resp_2", "5"))
        )
        client.tools.register(
            FunctionTool(name="add", description="Add", fn=lambda p: str(p["a"] + p["b"]))
        )

        response = await client.responses.asend(ResponseRequest(input="2+3"))
        assert response.text == "5"
