"""Request and response types for the responses endpoint, with Pydantic validation."""

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MODEL = "gpt-4o-mini"

# === Enums ===


class FinishReason(str, Enum):
    """Why the model stopped generating (chat and text completions)."""

    STOP = "stop"
    LENGTH = "length"
    CONTENT_FILTER = "content_filter"
    TOOL_CALLS = "tool_calls"
    FUNCTION_CALL = "function_call"
    NULL = "null"


def is_normal_finish(reason: str | FinishReason | None) -> bool:
    """Only "stop" and an empty reason denote normal termination."""
    if isinstance(reason, FinishReason):
        reason = reason.value
    return reason in (None, "", FinishReason.STOP.value)


class ResponseStatus(str, Enum):
    """Lifecycle status of a response object."""

    COMPLETED = "completed"
    FAILED = "failed"
    IN_PROGRESS = "in_progress"
    CANCELLED = "cancelled"
    QUEUED = "queued"
    INCOMPLETE = "incomplete"


class TextFormatType(str, Enum):
    TEXT = "text"
    JSON_OBJECT = "json_object"
    JSON_SCHEMA = "json_schema"


# === Shared ===


class ErrorObject(BaseModel):
    """Error object as the server reports it."""

    model_config = ConfigDict(extra="allow")

    message: str = ""
    type: str | None = None
    param: str | None = None
    code: str | None = None


class InputTokensDetails(BaseModel):
    cached_tokens: int = 0


class OutputTokensDetails(BaseModel):
    reasoning_tokens: int = 0


class Usage(BaseModel):
    """Token usage of a response."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    input_tokens_details: InputTokensDetails = Field(default_factory=InputTokensDetails)
    output_tokens_details: OutputTokensDetails = Field(default_factory=OutputTokensDetails)


class TokenUsage(BaseModel):
    """Token usage of a chat or text completion."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


# === Request ===


class ReasoningConfig(BaseModel):
    """Configuration for reasoning models."""

    effort: str | None = None  # "none", "minimal", "low", "medium", "high"
    summary: str | None = None  # "auto", "concise", "detailed"


class TextFormat(BaseModel):
    """Output format constraint."""

    model_config = ConfigDict(populate_by_name=True)

    type: TextFormatType = TextFormatType.TEXT
    name: str | None = None
    json_schema: dict[str, Any] | None = Field(default=None, alias="schema")
    description: str | None = None
    strict: bool | None = None


class TextOptions(BaseModel):
    """The ``text`` request field."""

    format: TextFormat = Field(default_factory=TextFormat)
    verbosity: str | None = None  # "low", "medium", "high"

    @classmethod
    def json_schema(
        cls,
        name: str,
        schema: dict[str, Any],
        strict: bool = True,
        description: str | None = None,
    ) -> "TextOptions":
        """Constrain output to a JSON schema.

        Example:
            text = TextOptions.json_schema("weather", {
                "type": "object",
                "properties": {"city": {"type": "string"}},
                "required": ["city"],
                "additionalProperties": False,
            })
        """
        return cls(
            format=TextFormat(
                type=TextFormatType.JSON_SCHEMA,
                name=name,
                schema=schema,
                strict=strict,
                description=description,
            )
        )


class Tool(BaseModel):
    """Tool definition. Extra fields are passed through for hosted tools."""

    model_config = ConfigDict(extra="allow")

    type: str = "function"
    name: str | None = None
    description: str | None = None
    parameters: dict[str, Any] | None = None
    strict: bool | None = None


class StreamOptions(BaseModel):
    """The ``stream_options`` request field."""

    include_obfuscation: bool | None = None


class ResponseRequest(BaseModel):
    """Request body for the responses endpoint."""

    model: str = DEFAULT_MODEL
    input: str | list[Any]

    instructions: str | None = None
    include: list[str] | None = None
    conversation: str | None = None
    max_output_tokens: int | None = None
    max_tool_calls: int | None = None
    metadata: dict[str, str] | None = None
    parallel_tool_calls: bool | None = None
    previous_response_id: str | None = None
    prompt_cache_key: str | None = None
    reasoning: ReasoningConfig | None = None
    safety_identifier: str | None = None
    service_tier: str | None = None
    store: bool | None = None
    stream: bool = False
    stream_options: StreamOptions | None = None
    temperature: float | None = None
    text: TextOptions | None = None
    tool_choice: str | dict[str, Any] | None = None
    tools: list[Tool] | None = None
    top_p: float | None = None
    truncation: str | None = None
    user: str | None = None
    background: bool | None = None

    # Client-side only: return function calls instead of executing registered tools
    return_tool_calls: bool = Field(default=False, exclude=True)

    def to_payload(self) -> dict[str, Any]:
        """JSON body, omitting unset fields. ``stream`` is only sent when true."""
        payload = self.model_dump(mode="json", exclude_none=True, by_alias=True)
        if not self.stream:
            payload.pop("stream", None)
        return payload

    def follow_up(self, response: "Response | str", input: str | list[Any]) -> "ResponseRequest":
        """Copy of this request continuing the conversation after ``response``.

        Requests bound to a stored ``conversation`` keep only the new input; the
        conversation already holds the history.
        """
        update: dict[str, Any] = {"input": input}
        if self.conversation is None:
            update["previous_response_id"] = response if isinstance(response, str) else response.id
        return self.model_copy(update=update, deep=True)


def force_tool_choice(tool_type: str, name: str | None = None) -> str | dict[str, Any]:
    """Value for ``tool_choice`` that forces a specific tool."""
    if tool_type in ("function", "custom"):
        return {"type": tool_type, "name": name}
    if tool_type == "web_search_preview":
        return {"type": "web_search"}
    if tool_type in (
        "file_search",
        "web_search",
        "computer_use_preview",
        "mcp",
        "local_shell",
        "code_interpreter",
        "shell",
        "apply_patch",
    ):
        return {"type": tool_type}
    return "auto"


# === Response ===


class FunctionCall(BaseModel):
    """A ``function_call`` output item."""

    model_config = ConfigDict(extra="allow")

    type: str = "function_call"
    id: str = ""
    call_id: str = ""
    name: str = ""
    arguments: str = ""
    status: str | None = None

    def parsed_arguments(self) -> dict[str, Any]:
        return json.loads(self.arguments or "{}")


class Response(BaseModel):
    """Response object returned by the responses endpoint (and carried by stream events)."""

    model_config = ConfigDict(extra="allow")

    id: str = ""
    object: str = "response"
    created_at: int = 0
    status: str | None = None
    error: ErrorObject | None = None
    incomplete_details: dict[str, Any] | None = None
    instructions: Any = None
    model: str = ""
    output: list[dict[str, Any]] = Field(default_factory=list)
    previous_response_id: str | None = None
    usage: Usage | None = None
    metadata: dict[str, Any] | None = None

    def _messages(self) -> list[dict[str, Any]]:
        return [item for item in self.output if item.get("type") == "message"]

    @property
    def output_texts(self) -> list[str]:
        """Texts of all ``output_text`` parts, in order."""
        texts = []
        for message in self._messages():
            content = message.get("content") or []
            if isinstance(content, str):
                texts.append(content)
                continue
            for part in content:
                if part.get("type") == "output_text":
                    texts.append(part.get("text", ""))
        return texts

    @property
    def text(self) -> str:
        """Convenience: output texts joined with newlines."""
        return "\n".join(self.output_texts)

    @property
    def refusals(self) -> list[str]:
        refusals = []
        for message in self._messages():
            for part in message.get("content") or []:
                if isinstance(part, dict) and part.get("type") == "refusal":
                    refusals.append(part.get("refusal", ""))
        return refusals

    @property
    def function_calls(self) -> list[FunctionCall]:
        return [
            FunctionCall.model_validate(item)
            for item in self.output
            if item.get("type") == "function_call"
        ]

    @property
    def reasoning_summaries(self) -> list[str]:
        summaries = []
        for item in self.output:
            if item.get("type") != "reasoning":
                continue
            for part in item.get("summary") or []:
                summaries.append(part.get("text", ""))
        return summaries
