"""Typed events of the streaming responses endpoint.

Every event the server may emit is a Pydantic model keyed by its wire name
(the ``type`` field, also sent as the SSE ``event:`` name). ``EVENT_TYPES`` maps
wire names to models; names missing from it decode to ``UnknownEvent`` so new
server events never break a stream.

Each model declares whether it ends the stream:

    for event in session:
        match event:
            case OutputTextDeltaEvent():
                print(event.delta, end="")
            case ResponseCompletedEvent():
                print(event.response.usage)
"""

from enum import Enum
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field

from .types import ErrorObject, Response


class Terminality(str, Enum):
    """How an event affects the stream it arrives on."""

    NON_TERMINAL = "non_terminal"
    SUCCESS = "success"
    FAILURE = "failure"


class BaseEvent(BaseModel):
    """Fields shared by every event."""

    model_config = ConfigDict(extra="allow")

    terminality: ClassVar[Terminality] = Terminality.NON_TERMINAL

    type: str
    sequence_number: int = 0


class ResponseEvent(BaseEvent):
    """Event carrying the whole response object."""

    response: Response = Field(default_factory=Response)


class ItemEvent(BaseEvent):
    """Event referencing an output item."""

    item_id: str = ""
    output_index: int = 0


class ContentEvent(ItemEvent):
    """Event referencing a content part of an output item."""

    content_index: int = 0


# === Lifecycle ===


class ResponseCreatedEvent(ResponseEvent):
    type: Literal["response.created"] = "response.created"


class ResponseInProgressEvent(ResponseEvent):
    type: Literal["response.in_progress"] = "response.in_progress"


class ResponseQueuedEvent(ResponseEvent):
    type: Literal["response.queued"] = "response.queued"


class OutputItemAddedEvent(BaseEvent):
    type: Literal["response.output_item.added"] = "response.output_item.added"
    output_index: int = 0
    item: dict[str, Any] = Field(default_factory=dict)


class OutputItemDoneEvent(BaseEvent):
    type: Literal["response.output_item.done"] = "response.output_item.done"
    output_index: int = 0
    item: dict[str, Any] = Field(default_factory=dict)


class ContentPartAddedEvent(ContentEvent):
    type: Literal["response.content_part.added"] = "response.content_part.added"
    part: dict[str, Any] = Field(default_factory=dict)


class ContentPartDoneEvent(ContentEvent):
    type: Literal["response.content_part.done"] = "response.content_part.done"
    part: dict[str, Any] = Field(default_factory=dict)


# === Incremental output ===


class OutputTextDeltaEvent(ContentEvent):
    type: Literal["response.output_text.delta"] = "response.output_text.delta"
    delta: str = ""


class OutputTextDoneEvent(ContentEvent):
    type: Literal["response.output_text.done"] = "response.output_text.done"
    text: str = ""


class OutputTextAnnotationAddedEvent(ContentEvent):
    type: Literal["response.output_text.annotation.added"] = "response.output_text.annotation.added"
    annotation_index: int = 0
    annotation: dict[str, Any] = Field(default_factory=dict)


class RefusalDeltaEvent(ContentEvent):
    type: Literal["response.refusal.delta"] = "response.refusal.delta"
    delta: str = ""


class RefusalDoneEvent(ContentEvent):
    type: Literal["response.refusal.done"] = "response.refusal.done"
    refusal: str = ""


class FunctionCallArgumentsDeltaEvent(ItemEvent):
    type: Literal["response.function_call_arguments.delta"] = "response.function_call_arguments.delta"
    delta: str = ""


class FunctionCallArgumentsDoneEvent(ItemEvent):
    type: Literal["response.function_call_arguments.done"] = "response.function_call_arguments.done"
    arguments: str = ""
    name: str | None = None


class ReasoningTextDeltaEvent(ContentEvent):
    type: Literal["response.reasoning_text.delta"] = "response.reasoning_text.delta"
    delta: str = ""


class ReasoningTextDoneEvent(ContentEvent):
    type: Literal["response.reasoning_text.done"] = "response.reasoning_text.done"
    text: str = ""


class ReasoningSummaryPartAddedEvent(ItemEvent):
    type: Literal["response.reasoning_summary_part.added"] = "response.reasoning_summary_part.added"
    summary_index: int = 0
    part: dict[str, Any] = Field(default_factory=dict)


class ReasoningSummaryPartDoneEvent(ItemEvent):
    type: Literal["response.reasoning_summary_part.done"] = "response.reasoning_summary_part.done"
    summary_index: int = 0
    part: dict[str, Any] = Field(default_factory=dict)


class ReasoningSummaryTextDeltaEvent(ItemEvent):
    type: Literal["response.reasoning_summary_text.delta"] = "response.reasoning_summary_text.delta"
    summary_index: int = 0
    delta: str = ""


class ReasoningSummaryTextDoneEvent(ItemEvent):
    type: Literal["response.reasoning_summary_text.done"] = "response.reasoning_summary_text.done"
    summary_index: int = 0
    text: str = ""


# Older names still sent by some deployments; delta is an object with "text".


class ReasoningDeltaEvent(ContentEvent):
    type: Literal["response.reasoning.delta"] = "response.reasoning.delta"
    delta: dict[str, Any] | str = ""


class ReasoningDoneEvent(ContentEvent):
    type: Literal["response.reasoning.done"] = "response.reasoning.done"
    text: str = ""


class ReasoningSummaryDeltaEvent(ItemEvent):
    type: Literal["response.reasoning_summary.delta"] = "response.reasoning_summary.delta"
    summary_index: int = 0
    delta: dict[str, Any] | str = ""


class ReasoningSummaryDoneEvent(ItemEvent):
    type: Literal["response.reasoning_summary.done"] = "response.reasoning_summary.done"
    summary_index: int = 0
    text: str = ""


class CustomToolCallInputDeltaEvent(ItemEvent):
    type: Literal["response.custom_tool_call_input.delta"] = "response.custom_tool_call_input.delta"
    delta: str = ""


class CustomToolCallInputDoneEvent(ItemEvent):
    type: Literal["response.custom_tool_call_input.done"] = "response.custom_tool_call_input.done"
    input: str = ""


# === Auxiliary ===


class AudioDeltaEvent(BaseEvent):
    """Base64 audio chunk."""

    type: Literal["response.audio.delta"] = "response.audio.delta"
    delta: str = ""


class AudioDoneEvent(BaseEvent):
    type: Literal["response.audio.done"] = "response.audio.done"


class AudioTranscriptDeltaEvent(BaseEvent):
    type: Literal["response.audio.transcript.delta"] = "response.audio.transcript.delta"
    delta: str = ""


class AudioTranscriptDoneEvent(BaseEvent):
    type: Literal["response.audio.transcript.done"] = "response.audio.transcript.done"


class ImageGenerationInProgressEvent(ItemEvent):
    type: Literal["response.image_generation_call.in_progress"] = "response.image_generation_call.in_progress"


class ImageGenerationGeneratingEvent(ItemEvent):
    type: Literal["response.image_generation_call.generating"] = "response.image_generation_call.generating"


class ImageGenerationCompletedEvent(ItemEvent):
    type: Literal["response.image_generation_call.completed"] = "response.image_generation_call.completed"


class ImageGenerationPartialImageEvent(ItemEvent):
    type: Literal["response.image_generation_call.partial_image"] = (
        "response.image_generation_call.partial_image"
    )
    partial_image_index: int = 0
    partial_image_b64: str = ""


class WebSearchInProgressEvent(ItemEvent):
    type: Literal["response.web_search_call.in_progress"] = "response.web_search_call.in_progress"


class WebSearchSearchingEvent(ItemEvent):
    type: Literal["response.web_search_call.searching"] = "response.web_search_call.searching"


class WebSearchCompletedEvent(ItemEvent):
    type: Literal["response.web_search_call.completed"] = "response.web_search_call.completed"


class FileSearchInProgressEvent(ItemEvent):
    type: Literal["response.file_search_call.in_progress"] = "response.file_search_call.in_progress"


class FileSearchSearchingEvent(ItemEvent):
    type: Literal["response.file_search_call.searching"] = "response.file_search_call.searching"


class FileSearchCompletedEvent(ItemEvent):
    type: Literal["response.file_search_call.completed"] = "response.file_search_call.completed"


class CodeInterpreterInProgressEvent(ItemEvent):
    type: Literal["response.code_interpreter_call.in_progress"] = "response.code_interpreter_call.in_progress"


class CodeInterpreterInterpretingEvent(ItemEvent):
    type: Literal["response.code_interpreter_call.interpreting"] = (
        "response.code_interpreter_call.interpreting"
    )


class CodeInterpreterCompletedEvent(ItemEvent):
    type: Literal["response.code_interpreter_call.completed"] = "response.code_interpreter_call.completed"


class CodeInterpreterCodeDeltaEvent(ItemEvent):
    type: Literal["response.code_interpreter_call_code.delta"] = "response.code_interpreter_call_code.delta"
    delta: str = ""


class CodeInterpreterCodeDoneEvent(ItemEvent):
    type: Literal["response.code_interpreter_call_code.done"] = "response.code_interpreter_call_code.done"
    code: str = ""


class McpCallArgumentsDeltaEvent(ItemEvent):
    type: Literal["response.mcp_call_arguments.delta"] = "response.mcp_call_arguments.delta"
    delta: Any = None


class McpCallArgumentsDoneEvent(ItemEvent):
    type: Literal["response.mcp_call_arguments.done"] = "response.mcp_call_arguments.done"
    arguments: Any = None


class McpCallInProgressEvent(ItemEvent):
    type: Literal["response.mcp_call.in_progress"] = "response.mcp_call.in_progress"


class McpCallCompletedEvent(ItemEvent):
    type: Literal["response.mcp_call.completed"] = "response.mcp_call.completed"


class McpCallFailedEvent(ItemEvent):
    """A single MCP tool call failed; the response itself continues."""

    type: Literal["response.mcp_call.failed"] = "response.mcp_call.failed"


class McpListToolsInProgressEvent(ItemEvent):
    type: Literal["response.mcp_list_tools.in_progress"] = "response.mcp_list_tools.in_progress"


class McpListToolsCompletedEvent(ItemEvent):
    type: Literal["response.mcp_list_tools.completed"] = "response.mcp_list_tools.completed"


class McpListToolsFailedEvent(ItemEvent):
    type: Literal["response.mcp_list_tools.failed"] = "response.mcp_list_tools.failed"


# === Terminal ===


class ResponseCompletedEvent(ResponseEvent):
    """Final event of a successful stream; carries the aggregated response."""

    terminality: ClassVar[Terminality] = Terminality.SUCCESS

    type: Literal["response.completed"] = "response.completed"


class ResponseFailedEvent(ResponseEvent):
    terminality: ClassVar[Terminality] = Terminality.FAILURE

    type: Literal["response.failed"] = "response.failed"
    error: ErrorObject | None = None


class ResponseIncompleteEvent(ResponseEvent):
    terminality: ClassVar[Terminality] = Terminality.FAILURE

    type: Literal["response.incomplete"] = "response.incomplete"


class ErrorEvent(BaseEvent):
    """Stream-level error reported by the server."""

    terminality: ClassVar[Terminality] = Terminality.FAILURE

    type: Literal["error"] = "error"
    message: str = ""
    code: str | None = None
    param: str | None = None


# === Unrecognised ===


class UnknownEvent(BaseModel):
    """Event whose name is not in the registry. ``raw`` is the parsed JSON when
    the data was valid JSON, otherwise the data text."""

    terminality: ClassVar[Terminality] = Terminality.NON_TERMINAL

    type: Literal["unknown"] = "unknown"
    name: str
    raw: Any = None
    data: str = ""

    @property
    def sequence_number(self) -> int:
        if isinstance(self.raw, dict) and isinstance(self.raw.get("sequence_number"), int):
            return self.raw["sequence_number"]
        return 0


_EVENT_CLASSES: tuple[type[BaseEvent], ...] = (
    ResponseCreatedEvent,
    ResponseInProgressEvent,
    ResponseQueuedEvent,
    OutputItemAddedEvent,
    OutputItemDoneEvent,
    ContentPartAddedEvent,
    ContentPartDoneEvent,
    OutputTextDeltaEvent,
    OutputTextDoneEvent,
    OutputTextAnnotationAddedEvent,
    RefusalDeltaEvent,
    RefusalDoneEvent,
    FunctionCallArgumentsDeltaEvent,
    FunctionCallArgumentsDoneEvent,
    ReasoningTextDeltaEvent,
    ReasoningTextDoneEvent,
    ReasoningSummaryPartAddedEvent,
    ReasoningSummaryPartDoneEvent,
    ReasoningSummaryTextDeltaEvent,
    ReasoningSummaryTextDoneEvent,
    ReasoningDeltaEvent,
    ReasoningDoneEvent,
    ReasoningSummaryDeltaEvent,
    ReasoningSummaryDoneEvent,
    CustomToolCallInputDeltaEvent,
    CustomToolCallInputDoneEvent,
    AudioDeltaEvent,
    AudioDoneEvent,
    AudioTranscriptDeltaEvent,
    AudioTranscriptDoneEvent,
    ImageGenerationInProgressEvent,
    ImageGenerationGeneratingEvent,
    ImageGenerationCompletedEvent,
    ImageGenerationPartialImageEvent,
    WebSearchInProgressEvent,
    WebSearchSearchingEvent,
    WebSearchCompletedEvent,
    FileSearchInProgressEvent,
    FileSearchSearchingEvent,
    FileSearchCompletedEvent,
    CodeInterpreterInProgressEvent,
    CodeInterpreterInterpretingEvent,
    CodeInterpreterCompletedEvent,
    CodeInterpreterCodeDeltaEvent,
    CodeInterpreterCodeDoneEvent,
    McpCallArgumentsDeltaEvent,
    McpCallArgumentsDoneEvent,
    McpCallInProgressEvent,
    McpCallCompletedEvent,
    McpCallFailedEvent,
    McpListToolsInProgressEvent,
    McpListToolsCompletedEvent,
    McpListToolsFailedEvent,
    ResponseCompletedEvent,
    ResponseFailedEvent,
    ResponseIncompleteEvent,
    ErrorEvent,
)

# Wire name -> model
EVENT_TYPES: dict[str, type[BaseEvent]] = {
    cls.model_fields["type"].default: cls for cls in _EVENT_CLASSES
}

# Union type for all events
StreamEvent = (
    ResponseCreatedEvent
    | ResponseInProgressEvent
    | ResponseQueuedEvent
    | OutputItemAddedEvent
    | OutputItemDoneEvent
    | ContentPartAddedEvent
    | ContentPartDoneEvent
    | OutputTextDeltaEvent
    | OutputTextDoneEvent
    | OutputTextAnnotationAddedEvent
    | RefusalDeltaEvent
    | RefusalDoneEvent
    | FunctionCallArgumentsDeltaEvent
    | FunctionCallArgumentsDoneEvent
    | ReasoningTextDeltaEvent
    | ReasoningTextDoneEvent
    | ReasoningSummaryPartAddedEvent
    | ReasoningSummaryPartDoneEvent
    | ReasoningSummaryTextDeltaEvent
    | ReasoningSummaryTextDoneEvent
    | ReasoningDeltaEvent
    | ReasoningDoneEvent
    | ReasoningSummaryDeltaEvent
    | ReasoningSummaryDoneEvent
    | CustomToolCallInputDeltaEvent
    | CustomToolCallInputDoneEvent
    | AudioDeltaEvent
    | AudioDoneEvent
    | AudioTranscriptDeltaEvent
    | AudioTranscriptDoneEvent
    | ImageGenerationInProgressEvent
    | ImageGenerationGeneratingEvent
    | ImageGenerationCompletedEvent
    | ImageGenerationPartialImageEvent
    | WebSearchInProgressEvent
    | WebSearchSearchingEvent
    | WebSearchCompletedEvent
    | FileSearchInProgressEvent
    | FileSearchSearchingEvent
    | FileSearchCompletedEvent
    | CodeInterpreterInProgressEvent
    | CodeInterpreterInterpretingEvent
    | CodeInterpreterCompletedEvent
    | CodeInterpreterCodeDeltaEvent
    | CodeInterpreterCodeDoneEvent
    | McpCallArgumentsDeltaEvent
    | McpCallArgumentsDoneEvent
    | McpCallInProgressEvent
    | McpCallCompletedEvent
    | McpCallFailedEvent
    | McpListToolsInProgressEvent
    | McpListToolsCompletedEvent
    | McpListToolsFailedEvent
    | ResponseCompletedEvent
    | ResponseFailedEvent
    | ResponseIncompleteEvent
    | ErrorEvent
    | UnknownEvent
)


def event_terminality(event: BaseModel) -> Terminality:
    """Terminal classification of an event instance."""
    return getattr(type(event), "terminality", Terminality.NON_TERMINAL)


def is_terminal(event: BaseModel) -> bool:
    return event_terminality(event) is not Terminality.NON_TERMINAL


def failure_message(event: BaseModel) -> str:
    """Human-readable reason for a terminal-failure event."""
    if isinstance(event, ErrorEvent):
        return event.message or "stream error"
    if isinstance(event, ResponseFailedEvent):
        if event.response.error and event.response.error.message:
            return event.response.error.message
        if event.error and event.error.message:
            return event.error.message
        return "response failed"
    if isinstance(event, ResponseIncompleteEvent):
        details = event.response.incomplete_details or {}
        reason = details.get("reason")
        return f"response incomplete: {reason}" if reason else "response incomplete"
    return ""


def failure_code(event: BaseModel) -> str | None:
    if isinstance(event, ErrorEvent):
        return event.code
    if isinstance(event, ResponseFailedEvent):
        if event.response.error and event.response.error.code:
            return event.response.error.code
        if event.error:
            return event.error.code
    return None
