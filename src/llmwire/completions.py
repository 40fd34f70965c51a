"""Legacy text completions endpoint (``v1/completions``)."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .transport import Transport
from .types import FinishReason, TokenUsage

COMPLETIONS_PATH = "v1/completions"
DEFAULT_COMPLETION_MODEL = "gpt-3.5-turbo-instruct"


class CompletionRequest(BaseModel):
    model: str = DEFAULT_COMPLETION_MODEL
    prompt: str | list[str]
    max_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None
    n: int | None = None
    stop: str | list[str] | None = None
    suffix: str | None = None
    echo: bool | None = None
    user: str | None = None


class CompletionChoice(BaseModel):
    index: int = 0
    text: str = ""
    finish_reason: FinishReason | None = None


class Completion(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    object: str = "text_completion"
    created: int = 0
    model: str = ""
    choices: list[CompletionChoice] = Field(default_factory=list)
    usage: TokenUsage | None = None

    @property
    def text(self) -> str:
        return self.choices[0].text if self.choices else ""


class CompletionService:
    def __init__(self, transport: Transport):
        self._transport = transport

    def send(self, request: CompletionRequest) -> Completion:
        payload: dict[str, Any] = request.model_dump(mode="json", exclude_none=True)
        return Completion.model_validate(self._transport.request("POST", COMPLETIONS_PATH, payload))
