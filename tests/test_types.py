"""Tests for request and response types."""

import pytest

from llmwire import (
    FinishReason,
    ReasoningConfig,
    Response,
    ResponseRequest,
    TextOptions,
    Tool,
    force_tool_choice,
    is_normal_finish,
)


class TestFinishReason:
    def test_values(self):
        assert {r.value for r in FinishReason} == {
            "stop",
            "length",
            "content_filter",
            "tool_calls",
            "function_call",
            "null",
        }

    @pytest.mark.parametrize("reason", [None, "", "stop", FinishReason.STOP])
    def test_normal(self, reason):
        assert is_normal_finish(reason)

    @pytest.mark.parametrize("reason", ["length", "content_filter", FinishReason.TOOL_CALLS, "null"])
    def test_abnormal(self, reason):
        assert not is_normal_finish(reason)


class TestResponseRequest:
    def test_minimal_payload(self):
        assert ResponseRequest(input="hi").to_payload() == {"model": "gpt-4o-mini", "input": "hi"}

    def test_stream_only_sent_when_true(self):
        assert ResponseRequest(input="hi", stream=True).to_payload()["stream"] is True

    def test_nested_options(self):
        request = ResponseRequest(
            input="hi",
            reasoning=ReasoningConfig(effort="low"),
            tools=[Tool(name="get_weather", parameters={"type": "object"})],
            tool_choice=force_tool_choice("function", "get_weather"),
        )
        payload = request.to_payload()
        assert payload["reasoning"] == {"effort": "low"}
        assert payload["tools"] == [
            {"type": "function", "name": "get_weather", "parameters": {"type": "object"}}
        ]
        assert payload["tool_choice"] == {"type": "function", "name": "get_weather"}

    def test_json_schema_format_uses_schema_key(self):
        schema = {"type": "object", "properties": {"city": {"type": "string"}}}
        payload = ResponseRequest(input="hi", text=TextOptions.json_schema("weather", schema)).to_payload()
        assert payload["text"]["format"] == {
            "type": "json_schema",
            "name": "weather",
            "schema": schema,
            "strict": True,
        }

    def test_follow_up(self):
        request = ResponseRequest(input="first", instructions="Be brief.")
        follow = request.follow_up(Response(id="resp_9"), "second")
        assert follow.previous_response_id == "resp_9"
        assert follow.input == "second"
        assert follow.instructions == "Be brief."
        assert request.previous_response_id is None

    def test_follow_up_with_id(self):
        assert ResponseRequest(input="a").follow_up("resp_1", "b").previous_response_id == "resp_1"

    def test_follow_up_in_conversation(self):
        follow = ResponseRequest(input="a", conversation="conv_1").follow_up("resp_1", "b")
        assert follow.previous_response_id is None
        assert follow.conversation == "conv_1"

    def test_return_tool_calls_not_sent(self):
        payload = ResponseRequest(input="a", return_tool_calls=True).to_payload()
        assert "return_tool_calls" not in payload


class TestForceToolChoice:
    def test_function(self):
        assert force_tool_choice("custom", "grammar") == {"type": "custom", "name": "grammar"}

    def test_hosted_tools(self):
        assert force_tool_choice("file_search") == {"type": "file_search"}
        assert force_tool_choice("web_search_preview") == {"type": "web_search"}

    def test_unknown_falls_back_to_auto(self):
        assert force_tool_choice("teleport") == "auto"


class TestResponse:
    def make(self) -> Response:
        return Response.model_validate(
            {
                "id": "resp_1",
                "status": "completed",
                "output": [
                    {"type": "reasoning", "summary": [{"type": "summary_text", "text": "thinking"}]},
                    {
                        "type": "message",
                        "content": [
                            {"type": "output_text", "text": "Hello"},
                            {"type": "refusal", "refusal": "no"},
                        ],
                    },
                    {"type": "message", "content": [{"type": "output_text", "text": "World"}]},
                    {
                        "type": "function_call",
                        "call_id": "call_1",
                        "name": "get_weather",
                        "arguments": '{"city": "Paris"}',
                    },
                ],
                "usage": {
                    "input_tokens": 3,
                    "output_tokens": 5,
                    "total_tokens": 8,
                    "output_tokens_details": {"reasoning_tokens": 2},
                },
                "service_tier": "default",
            }
        )

    def test_texts(self):
        response = self.make()
        assert response.output_texts == ["Hello", "World"]
        assert response.text == "Hello\nWorld"

    def test_refusals(self):
        assert self.make().refusals == ["no"]

    def test_function_calls(self):
        (call,) = self.make().function_calls
        assert call.name == "get_weather"
        assert call.parsed_arguments() == {"city": "Paris"}

    def test_reasoning_summaries(self):
        assert self.make().reasoning_summaries == ["thinking"]

    def test_usage_and_extra_fields(self):
        response = self.make()
        assert response.usage.output_tokens_details.reasoning_tokens == 2
        assert response.model_extra == {"service_tier": "default"}

    def test_empty(self):
        response = Response()
        assert response.text == ""
        assert response.function_calls == []
