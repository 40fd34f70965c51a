"""
llmwire - Typed client for the responses API with a streaming event protocol.

Quick start:
    from llmwire import quick, respond, stream, ResponseRequest, OutputTextDeltaEvent

    # One-liner (reads OPENAI_API_KEY, or a .env file)
    print(quick("What is 2+2?"))  # "4"

    # Standard (sync)
    response = respond(ResponseRequest(model="gpt-4o-mini", input="Hello!"))
    print(response.text)

    # Streaming (sync)
    with stream(ResponseRequest(input="Write a poem.")) as session:
        for event in session:
            if isinstance(event, OutputTextDeltaEvent):
                print(event.delta, end="")
    if session.err():
        raise session.err()

    # Async variant available: astream()
"""

__version__ = "0.1.0"

# Abort (cancellation)
from .abort import (
    AbortController,
    AbortError,
    AbortSignal,
)

# API (sync-first)
from .api import (
    astream,
    quick,
    respond,
    set_default_client,
    stream,
    stream_text,
)

# Client and services
from .assistants import Assistant, AssistantsService, Run, Thread, ThreadMessage
from .chat import ChatCompletion, ChatMessage, ChatRequest, ChatService
from .client import Client
from .completions import Completion, CompletionRequest, CompletionService
from .config import ClientConfig
from .conversations import Conversation, ConversationItemList, ConversationsService

# Decoding
from .decoder import decode_event

# Embeddings
from .embeddings import EmbeddingRequest, EmbeddingResponse, EmbeddingsService, cosine_similarity, distance

# Errors
from .errors import (
    APIError,
    APIStatusError,
    EventDecodeError,
    FrameError,
    LLMWireError,
    RequestError,
    ResponseFailedError,
    ToolError,
    TransportError,
)

# Events
from .events import (
    EVENT_TYPES,
    BaseEvent,
    ContentPartAddedEvent,
    ContentPartDoneEvent,
    ErrorEvent,
    FunctionCallArgumentsDeltaEvent,
    FunctionCallArgumentsDoneEvent,
    OutputItemAddedEvent,
    OutputItemDoneEvent,
    OutputTextDeltaEvent,
    OutputTextDoneEvent,
    ReasoningSummaryTextDeltaEvent,
    RefusalDeltaEvent,
    ResponseCompletedEvent,
    ResponseCreatedEvent,
    ResponseFailedEvent,
    ResponseIncompleteEvent,
    ResponseInProgressEvent,
    StreamEvent,
    Terminality,
    UnknownEvent,
    event_terminality,
    is_terminal,
)
from .moderation import ModerationResult, ModerationService
from .responses import ResponsesService

# Streaming
from .session import AsyncStreamSession, SessionState, StreamSession
from .sse import DONE, Frame, iter_frames

# Tools
from .tools import DoNotRespond, FunctionTool, ToolRegistry

# Types (Pydantic models)
from .types import (
    DEFAULT_MODEL,
    FinishReason,
    FunctionCall,
    ReasoningConfig,
    Response,
    ResponseRequest,
    ResponseStatus,
    TextOptions,
    Tool,
    Usage,
    force_tool_choice,
    is_normal_finish,
)

# Usage (litellm)
from .usage import count_tokens, estimate_cost, trim_messages

__all__ = [
    # Version
    "__version__",
    # Types
    "DEFAULT_MODEL",
    "FinishReason",
    "ResponseStatus",
    "ReasoningConfig",
    "TextOptions",
    "Tool",
    "Usage",
    "Response",
    "ResponseRequest",
    "FunctionCall",
    "force_tool_choice",
    "is_normal_finish",
    # Events
    "EVENT_TYPES",
    "BaseEvent",
    "StreamEvent",
    "Terminality",
    "UnknownEvent",
    "ResponseCreatedEvent",
    "ResponseInProgressEvent",
    "OutputItemAddedEvent",
    "OutputItemDoneEvent",
    "ContentPartAddedEvent",
    "ContentPartDoneEvent",
    "OutputTextDeltaEvent",
    "OutputTextDoneEvent",
    "RefusalDeltaEvent",
    "FunctionCallArgumentsDeltaEvent",
    "FunctionCallArgumentsDoneEvent",
    "ReasoningSummaryTextDeltaEvent",
    "ResponseCompletedEvent",
    "ResponseFailedEvent",
    "ResponseIncompleteEvent",
    "ErrorEvent",
    "event_terminality",
    "is_terminal",
    "decode_event",
    # Streaming
    "Frame",
    "DONE",
    "iter_frames",
    "StreamSession",
    "AsyncStreamSession",
    "SessionState",
    # Client
    "Client",
    "ClientConfig",
    "ResponsesService",
    "ChatService",
    "ChatRequest",
    "ChatMessage",
    "ChatCompletion",
    "CompletionService",
    "CompletionRequest",
    "Completion",
    "ModerationService",
    "ModerationResult",
    "ConversationsService",
    "Conversation",
    "ConversationItemList",
    "EmbeddingsService",
    "EmbeddingRequest",
    "EmbeddingResponse",
    "cosine_similarity",
    "distance",
    "AssistantsService",
    "Assistant",
    "Thread",
    "ThreadMessage",
    "Run",
    # API - Sync (primary)
    "respond",
    "stream",
    "stream_text",
    "quick",
    "set_default_client",
    # API - Async variants
    "astream",
    # Tools
    "ToolRegistry",
    "FunctionTool",
    "DoNotRespond",
    # Usage
    "count_tokens",
    "estimate_cost",
    "trim_messages",
    # Errors
    "LLMWireError",
    "RequestError",
    "TransportError",
    "APIStatusError",
    "APIError",
    "FrameError",
    "EventDecodeError",
    "ResponseFailedError",
    "ToolError",
    # Abort
    "AbortSignal",
    "AbortController",
    "AbortError",
]
