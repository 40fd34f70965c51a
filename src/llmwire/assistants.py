"""Assistants (beta): assistants, threads, messages and runs."""

import logging
import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .abort import AbortError, AbortSignal
from .errors import ResponseFailedError
from .transport import Transport
from .types import ErrorObject

logger = logging.getLogger(__name__)

BETA_HEADERS = {"OpenAI-Beta": "assistants=v2"}

PENDING_RUN_STATUSES = ("queued", "in_progress", "cancelling")


class Assistant(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    model: str = ""
    name: str | None = None
    description: str | None = None
    instructions: str | None = None
    tools: list[dict[str, Any]] = Field(default_factory=list)
    metadata: dict[str, str] | None = None


class Thread(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    metadata: dict[str, str] | None = None


class ThreadMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    thread_id: str = ""
    role: str = "user"
    content: list[dict[str, Any]] = Field(default_factory=list)
    run_id: str | None = None

    @property
    def text(self) -> str:
        """Text parts joined with newlines."""
        return "\n".join(
            part["text"].get("value", "")
            for part in self.content
            if part.get("type") == "text" and isinstance(part.get("text"), dict)
        )


class Run(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    thread_id: str = ""
    assistant_id: str = ""
    status: str = "queued"
    required_action: dict[str, Any] | None = None
    last_error: ErrorObject | None = None

    @property
    def is_pending(self) -> bool:
        return self.status in PENDING_RUN_STATUSES

    @property
    def requires_tool_outputs(self) -> bool:
        return self.status == "requires_action"


class AssistantsService:
    """Client for the assistants beta API.

    Example:
        assistant = client.assistants.create_assistant("gpt-4o-mini", instructions="Be brief.")
        thread = client.assistants.create_thread()
        client.assistants.add_message(thread.id, "Hello")
        run = client.assistants.create_run(thread.id, assistant.id)
        run = client.assistants.run_until_done(thread.id, run.id)
        messages, _ = client.assistants.list_messages(thread.id)
    """

    def __init__(self, transport: Transport, refresh_interval: float = 1.0):
        self._transport = transport
        self.refresh_interval = refresh_interval

    def _call(self, method: str, path: str, payload: Any = None, params: dict | None = None) -> dict:
        return self._transport.request(method, path, payload, headers=BETA_HEADERS, params=params)

    # === Assistants ===

    def create_assistant(
        self,
        model: str,
        name: str | None = None,
        instructions: str | None = None,
        description: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        metadata: dict[str, str] | None = None,
    ) -> Assistant:
        payload = {
            "model": model,
            "name": name,
            "instructions": instructions,
            "description": description,
            "tools": tools,
            "metadata": metadata,
        }
        payload = {k: v for k, v in payload.items() if v is not None}
        return Assistant.model_validate(self._call("POST", "v1/assistants", payload))

    def retrieve_assistant(self, assistant_id: str) -> Assistant:
        return Assistant.model_validate(self._call("GET", f"v1/assistants/{assistant_id}"))

    def list_assistants(self, limit: int = 20) -> list[Assistant]:
        data = self._call("GET", "v1/assistants", params={"limit": limit})
        return [Assistant.model_validate(item) for item in data.get("data", [])]

    def delete_assistant(self, assistant_id: str) -> bool:
        data = self._call("DELETE", f"v1/assistants/{assistant_id}")
        return bool(data.get("deleted", False))

    # === Threads and messages ===

    def create_thread(
        self,
        messages: list[dict[str, Any]] | None = None,
        metadata: dict[str, str] | None = None,
    ) -> Thread:
        payload: dict[str, Any] = {}
        if messages:
            payload["messages"] = messages
        if metadata:
            payload["metadata"] = metadata
        return Thread.model_validate(self._call("POST", "v1/threads", payload))

    def add_message(self, thread_id: str, content: str, role: str = "user") -> ThreadMessage:
        data = self._call(
            "POST", f"v1/threads/{thread_id}/messages", {"role": role, "content": content}
        )
        return ThreadMessage.model_validate(data)

    def list_messages(
        self,
        thread_id: str,
        limit: int = 20,
        after: str | None = None,
    ) -> tuple[list[ThreadMessage], bool]:
        """Messages newest first, and whether more pages exist."""
        params: dict[str, Any] = {"limit": limit}
        if after:
            params["after"] = after
        data = self._call("GET", f"v1/threads/{thread_id}/messages", params=params)
        messages = [ThreadMessage.model_validate(item) for item in data.get("data", [])]
        return messages, bool(data.get("has_more", False))

    # === Runs ===

    def create_run(
        self,
        thread_id: str,
        assistant_id: str,
        instructions: str | None = None,
    ) -> Run:
        payload = {"assistant_id": assistant_id}
        if instructions:
            payload["instructions"] = instructions
        return Run.model_validate(self._call("POST", f"v1/threads/{thread_id}/runs", payload))

    def retrieve_run(self, thread_id: str, run_id: str) -> Run:
        return Run.model_validate(self._call("GET", f"v1/threads/{thread_id}/runs/{run_id}"))

    def submit_tool_outputs(
        self, thread_id: str, run_id: str, outputs: list[dict[str, str]]
    ) -> Run:
        """Submit ``[{"tool_call_id": ..., "output": ...}]`` for a run awaiting tools."""
        data = self._call(
            "POST",
            f"v1/threads/{thread_id}/runs/{run_id}/submit_tool_outputs",
            {"tool_outputs": outputs},
        )
        return Run.model_validate(data)

    def run_until_done(
        self,
        thread_id: str,
        run_id: str,
        signal: AbortSignal | None = None,
    ) -> Run:
        """Poll a run until it is no longer pending.

        Returns runs that completed, were cancelled or expired, or need tool outputs.

        Raises:
            ResponseFailedError: The run failed.
            AbortError: ``signal`` fired while waiting.
        """
        while True:
            if signal is not None:
                signal.throw_if_aborted()
            run = self.retrieve_run(thread_id, run_id)
            if run.status == "failed":
                error = run.last_error
                raise ResponseFailedError(
                    error.message if error and error.message else f"run {run.id} failed",
                    code=error.code if error else None,
                )
            if not run.is_pending:
                return run
            logger.debug(f"Run {run_id} is {run.status}")
            if signal is not None:
                if signal.wait(self.refresh_interval):
                    raise AbortError(signal.reason)
            else:
                time.sleep(self.refresh_interval)
