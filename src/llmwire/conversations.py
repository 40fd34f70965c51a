"""Conversations endpoint (``v1/conversations``): stored conversation state.

A conversation holds items (messages, tool calls and their outputs) on the
server. Pass its id as ``ResponseRequest.conversation`` to have responses read
from and append to it.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .errors import RequestError
from .transport import Transport

CONVERSATIONS_PATH = "v1/conversations"


class Conversation(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    object: str = "conversation"
    created_at: int = 0
    metadata: dict[str, str] = Field(default_factory=dict)


class ConversationItemList(BaseModel):
    """One page of conversation items. Items are kept as raw JSON objects."""

    model_config = ConfigDict(extra="allow")

    data: list[dict[str, Any]] = Field(default_factory=list)
    first_id: str | None = None
    last_id: str | None = None
    has_more: bool = False


def _require(**ids: str) -> None:
    for name, value in ids.items():
        if not value:
            raise RequestError(f"{name} is empty")


def _include(include: list[str] | None) -> dict[str, Any] | None:
    return {"include[]": include} if include else None


class ConversationsService:
    """Client for ``v1/conversations``.

    Example:
        conv = client.conversations.create(metadata={"topic": "demo"})
        client.responses.send(ResponseRequest(input="Hi", conversation=conv.id))
        for item in client.conversations.list_items(conv.id).data:
            print(item["type"])
    """

    def __init__(self, transport: Transport):
        self._transport = transport

    def _path(self, conversation_id: str, suffix: str = "") -> str:
        _require(conversation_id=conversation_id)
        return f"{CONVERSATIONS_PATH}/{conversation_id}{suffix}"

    def create(
        self,
        metadata: dict[str, str] | None = None,
        items: list[Any] | None = None,
    ) -> Conversation:
        payload: dict[str, Any] = {}
        if metadata:
            payload["metadata"] = metadata
        if items:
            payload["items"] = items
        return Conversation.model_validate(
            self._transport.request("POST", CONVERSATIONS_PATH, payload)
        )

    def retrieve(self, conversation_id: str) -> Conversation:
        return Conversation.model_validate(self._transport.request("GET", self._path(conversation_id)))

    def update(self, conversation_id: str, metadata: dict[str, str]) -> Conversation:
        """Replace the conversation's metadata."""
        data = self._transport.request("POST", self._path(conversation_id), {"metadata": metadata})
        return Conversation.model_validate(data)

    def delete(self, conversation_id: str) -> bool:
        data = self._transport.request("DELETE", self._path(conversation_id))
        return bool(data.get("deleted", True))

    # === Items ===

    def list_items(
        self,
        conversation_id: str,
        limit: int | None = None,
        after: str | None = None,
        order: str | None = None,
        include: list[str] | None = None,
    ) -> ConversationItemList:
        params: dict[str, Any] = _include(include) or {}
        if limit:
            params["limit"] = limit
        if after:
            params["after"] = after
        if order:
            params["order"] = order
        data = self._transport.request(
            "GET", self._path(conversation_id, "/items"), params=params or None
        )
        return ConversationItemList.model_validate(data)

    def append_items(
        self,
        conversation_id: str,
        items: list[Any],
        include: list[str] | None = None,
    ) -> ConversationItemList:
        """Add items; returns the items as stored."""
        if not items:
            raise RequestError("at least one item must be provided")
        data = self._transport.request(
            "POST",
            self._path(conversation_id, "/items"),
            {"items": items},
            params=_include(include),
        )
        return ConversationItemList.model_validate(data)

    def item(
        self,
        conversation_id: str,
        item_id: str,
        include: list[str] | None = None,
    ) -> dict[str, Any]:
        _require(item_id=item_id)
        return self._transport.request(
            "GET", self._path(conversation_id, f"/items/{item_id}"), params=_include(include)
        )

    def delete_item(self, conversation_id: str, item_id: str) -> Conversation:
        """Remove one item; returns the conversation."""
        _require(item_id=item_id)
        data = self._transport.request("DELETE", self._path(conversation_id, f"/items/{item_id}"))
        return Conversation.model_validate(data)
