"""Function tools the model can call, and the registry that executes them.

``ResponsesService.send`` runs registered functions for every ``function_call``
the model returns, sends their outputs back as ``function_call_output`` items
and returns the follow-up response. Set ``ResponseRequest.return_tool_calls``
to get the calls back instead.

Example:
    registry = client.tools

    @registry.function(
        name="get_weather",
        description="Get the weather for a city",
        parameters={
            "type": "object",
            "properties": {"city": {"type": "string"}},
            "required": ["city"],
        },
    )
    def get_weather(params):
        return f"Sunny in {params['city']}"

    request = ResponseRequest(input="Weather in Paris?", tools=registry.definitions())
    print(client.responses.send(request).text)
"""

import json
import logging
import re
import threading
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .errors import ToolError
from .types import FunctionCall, Tool

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")

# Smallest parameters schema the API accepts for a function without arguments
EMPTY_PARAMS: dict[str, Any] = {"type": "object", "properties": {}}


class DoNotRespond(Exception):
    """Raise from a tool function to end the exchange without a follow-up request."""


ToolFunction = Callable[[dict[str, Any]], str]


class FunctionTool(BaseModel):
    """A function the model may request.

    ``fn`` receives the parsed arguments and returns the output text (encode
    structured data as JSON). Without ``fn`` the call is returned to the caller
    instead of executed.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str
    parameters: dict[str, Any] = Field(default_factory=lambda: dict(EMPTY_PARAMS))
    strict: bool | None = None
    fn: ToolFunction | None = Field(default=None, exclude=True)

    def to_tool(self) -> Tool:
        """Definition to put in ``ResponseRequest.tools``."""
        return Tool(
            type="function",
            name=self.name,
            description=self.description,
            parameters=self.parameters,
            strict=self.strict,
        )

    def run(self, call: FunctionCall) -> str:
        """Execute ``fn`` for one call.

        Raises:
            DoNotRespond: The function asked to stop.
            ToolError: Arguments are not valid JSON, or the function failed.
        """
        try:
            params = call.parsed_arguments()
        except ValueError as e:
            raise ToolError(f"invalid arguments for '{self.name}': {e}", name=self.name) from e
        try:
            result = self.fn(params)
        except DoNotRespond:
            raise
        except Exception as e:
            raise ToolError(f"function '{self.name}' failed: {e}", name=self.name) from e
        if not isinstance(result, str):
            result = json.dumps(result)
        return result


class ToolRegistry:
    """Thread-safe set of function tools, keyed by unique name."""

    def __init__(self):
        self._lock = threading.RLock()
        self._tools: dict[str, FunctionTool] = {}

    def register(self, tool: FunctionTool) -> FunctionTool:
        """Add ``tool``.

        Raises:
            ValueError: Invalid name, empty description, or name already taken.
        """
        if not NAME_PATTERN.match(tool.name):
            raise ValueError(f"invalid tool name '{tool.name}', must match {NAME_PATTERN.pattern}")
        if not tool.description:
            raise ValueError(f"tool '{tool.name}' needs a description")
        with self._lock:
            if tool.name in self._tools:
                raise ValueError(f"tool '{tool.name}' is already registered, names must be unique")
            self._tools[tool.name] = tool
        logger.debug(f"Registered tool {tool.name}")
        return tool

    def function(
        self,
        name: str,
        description: str,
        parameters: dict[str, Any] | None = None,
        strict: bool | None = None,
    ) -> Callable[[ToolFunction], ToolFunction]:
        """Decorator registering a plain function as a tool. Returns the function unchanged."""

        def decorator(fn: ToolFunction) -> ToolFunction:
            self.register(
                FunctionTool(
                    name=name,
                    description=description,
                    parameters=parameters if parameters is not None else dict(EMPTY_PARAMS),
                    strict=strict,
                    fn=fn,
                )
            )
            return fn

        return decorator

    def unregister(self, name: str) -> None:
        with self._lock:
            if name not in self._tools:
                raise KeyError(f"tool '{name}' is not registered")
            del self._tools[name]

    def get(self, name: str) -> FunctionTool | None:
        with self._lock:
            return self._tools.get(name)

    def definitions(self, *names: str) -> list[Tool]:
        """Request definitions for ``names`` (all registered tools if none given)."""
        with self._lock:
            if not names:
                return [t.to_tool() for t in self._tools.values()]
            missing = [n for n in names if n not in self._tools]
            if missing:
                raise KeyError(f"tools not registered: {', '.join(missing)}")
            return [self._tools[n].to_tool() for n in names]

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._tools

    def __len__(self) -> int:
        with self._lock:
            return len(self._tools)


def resolve_calls(
    registry: ToolRegistry, calls: list[FunctionCall]
) -> list[tuple[FunctionTool, FunctionCall]] | None:
    """Match calls to executable tools.

    Returns None if any call has a tool without ``fn``; those calls are for the
    caller to handle, so none are executed.

    Raises:
        ToolError: A call names a tool that is not registered.
    """
    resolved = []
    for call in calls:
        tool = registry.get(call.name)
        if tool is None:
            raise ToolError(f"tool '{call.name}' is not registered", name=call.name)
        resolved.append((tool, call))
    if any(tool.fn is None for tool, _ in resolved):
        return None
    return resolved


def execute_calls(resolved: list[tuple[FunctionTool, FunctionCall]]) -> list[dict[str, Any]] | None:
    """Run resolved calls in order.

    Returns the ``function_call_output`` items, or None if a function raised
    DoNotRespond.
    """
    outputs = []
    for tool, call in resolved:
        logger.debug(f"Executing tool {tool.name} (call {call.call_id})")
        try:
            result = tool.run(call)
        except DoNotRespond:
            logger.debug(f"Tool {tool.name} ended the exchange")
            return None
        outputs.append({"type": "function_call_output", "call_id": call.call_id, "output": result})
    return outputs
