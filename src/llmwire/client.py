"""Top-level client bundling the endpoint services."""

import httpx

from .assistants import AssistantsService
from .chat import ChatService
from .completions import CompletionService
from .config import ClientConfig
from .conversations import ConversationsService
from .embeddings import EmbeddingsService
from .moderation import ModerationService
from .responses import ResponsesService
from .tools import ToolRegistry
from .transport import Transport


class Client:
    """API client.

    Args:
        config: Settings; read from the environment (and ``.env``) if omitted.
        http_client: Optional httpx client to send requests with.
        async_http_client: Optional httpx async client for the async variants.

    Example:
        with Client() as client:
            print(client.responses.send(ResponseRequest(input="Hi")).text)
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        http_client: httpx.Client | None = None,
        async_http_client: httpx.AsyncClient | None = None,
    ):
        self.config = config or ClientConfig.from_env()
        self.transport = Transport(self.config, http_client, async_http_client)
        self.tools = ToolRegistry()
        self.responses = ResponsesService(self.transport, self.tools)
        self.conversations = ConversationsService(self.transport)
        self.chat = ChatService(self.transport)
        self.completions = CompletionService(self.transport)
        self.moderation = ModerationService(self.transport)
        self.embeddings = EmbeddingsService(self.transport)
        self.assistants = AssistantsService(self.transport)

    def close(self) -> None:
        self.transport.close()

    async def aclose(self) -> None:
        await self.transport.aclose()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
