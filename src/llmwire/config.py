"""Client configuration."""

import os

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

from .errors import RequestError

DEFAULT_BASE_URL = "https://api.openai.com/"
DEFAULT_TIMEOUT = 30.0
DEFAULT_STREAM_CAPACITY = 8
MAX_ERROR_BODY = 64 * 1024


class ClientConfig(BaseModel):
    """Connection settings shared by every service of a ``Client``.

    Example:
        config = ClientConfig(api_key="sk-...", timeout=60)
        client = Client(config)

        # Or from OPENAI_API_KEY / OPENAI_BASE_URL / OPENAI_ORG_ID (and .env)
        client = Client(ClientConfig.from_env())
    """

    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    organization: str | None = None
    timeout: float = DEFAULT_TIMEOUT  # non-streaming requests and stream handshakes
    stream_capacity: int = Field(default=DEFAULT_STREAM_CAPACITY, ge=1)
    max_error_body: int = Field(default=MAX_ERROR_BODY, ge=0)
    log_http: bool = False
    headers: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_env(cls, dotenv: bool = True, **overrides) -> "ClientConfig":
        """Build a config from environment variables.

        Args:
            dotenv: Load a ``.env`` file (without overriding set variables) first.
            **overrides: Explicit field values, taking precedence over the environment.
        """
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))
        values: dict = {"api_key": os.environ.get("OPENAI_API_KEY", "")}
        if os.environ.get("OPENAI_BASE_URL"):
            values["base_url"] = os.environ["OPENAI_BASE_URL"]
        if os.environ.get("OPENAI_ORG_ID"):
            values["organization"] = os.environ["OPENAI_ORG_ID"]
        values.update(overrides)
        return cls(**values)

    def validate_credentials(self) -> None:
        if not self.api_key:
            raise RequestError("no API key configured (set OPENAI_API_KEY or pass api_key)")

    def default_headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.organization:
            headers["OpenAI-Organization"] = self.organization
        headers.update(self.headers)
        return headers

    @property
    def normalized_base_url(self) -> str:
        return self.base_url if self.base_url.endswith("/") else self.base_url + "/"
