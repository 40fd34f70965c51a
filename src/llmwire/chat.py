"""Chat completions endpoint (``v1/chat/completions``)."""

import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .transport import Transport
from .types import DEFAULT_MODEL, FinishReason, TokenUsage, is_normal_finish

logger = logging.getLogger(__name__)

CHAT_PATH = "v1/chat/completions"


class ChatMessage(BaseModel):
    """A chat message. Extra fields (``tool_calls``, ``name``...) pass through."""

    model_config = ConfigDict(extra="allow")

    role: Literal["system", "developer", "user", "assistant", "tool"] = "user"
    content: str | list[dict[str, Any]] | None = None
    tool_call_id: str | None = None
    refusal: str | None = None


class ChatRequest(BaseModel):
    model: str = DEFAULT_MODEL
    messages: list[ChatMessage]
    temperature: float | None = None
    top_p: float | None = None
    max_completion_tokens: int | None = None
    n: int | None = None
    stop: str | list[str] | None = None
    tools: list[dict[str, Any]] | None = None
    tool_choice: str | dict[str, Any] | None = None
    response_format: dict[str, Any] | None = None
    seed: int | None = None
    user: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class ChatChoice(BaseModel):
    index: int = 0
    message: ChatMessage = Field(default_factory=lambda: ChatMessage(role="assistant"))
    finish_reason: FinishReason | None = None


class ChatCompletion(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    object: str = "chat.completion"
    created: int = 0
    model: str = ""
    choices: list[ChatChoice] = Field(default_factory=list)
    usage: TokenUsage | None = None

    @property
    def text(self) -> str:
        """Content of the first choice (empty if none)."""
        if not self.choices:
            return ""
        content = self.choices[0].message.content
        return content if isinstance(content, str) else ""

    @property
    def finish_reason(self) -> FinishReason | None:
        return self.choices[0].finish_reason if self.choices else None


def _parse(data: dict[str, Any]) -> ChatCompletion:
    completion = ChatCompletion.model_validate(data)
    for choice in completion.choices:
        if not is_normal_finish(choice.finish_reason):
            logger.debug(f"Chat choice {choice.index} finished with {choice.finish_reason.value}")
        if choice.message.refusal:
            logger.warning(f"Chat completion {completion.id} refused: {choice.message.refusal}")
    return completion


class ChatService:
    """Client for chat completions.

    Example:
        reply = client.chat.ask("What is 2+2?", system="Answer tersely.")
    """

    def __init__(self, transport: Transport):
        self._transport = transport

    def send(self, request: ChatRequest) -> ChatCompletion:
        return _parse(self._transport.request("POST", CHAT_PATH, request.to_payload()))

    async def asend(self, request: ChatRequest) -> ChatCompletion:
        return _parse(await self._transport.arequest("POST", CHAT_PATH, request.to_payload()))

    def ask(self, prompt: str, system: str | None = None, model: str = DEFAULT_MODEL) -> str:
        """One-shot question; returns the text of the first choice."""
        messages = []
        if system:
            messages.append(ChatMessage(role="system", content=system))
        messages.append(ChatMessage(role="user", content=prompt))
        return self.send(ChatRequest(model=model, messages=messages)).text
