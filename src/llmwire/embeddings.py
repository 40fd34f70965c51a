"""Embeddings endpoint (``v1/embeddings``) and vector helpers."""

import logging
import math
from collections.abc import Sequence

from pydantic import BaseModel, Field

from .errors import RequestError, TransportError
from .transport import Transport
from .types import TokenUsage

logger = logging.getLogger(__name__)

EMBEDDINGS_PATH = "v1/embeddings"

MODEL_ADA_2 = "text-embedding-ada-002"
MODEL_3_SMALL = "text-embedding-3-small"
MODEL_3_LARGE = "text-embedding-3-large"

DEFAULT_EMBEDDING_MODEL = MODEL_3_SMALL
DEFAULT_DIMENSIONS = 256

Vector = list[float]


class EmbeddingRequest(BaseModel):
    input: list[str]
    model: str = DEFAULT_EMBEDDING_MODEL
    encoding_format: str | None = None  # "float" or "base64"
    dimensions: int | None = None
    user: str | None = None

    def to_payload(self) -> dict:
        """JSON body. Models after ada-002 get ``DEFAULT_DIMENSIONS`` unless set."""
        payload = self.model_dump(exclude_none=True)
        if self.dimensions is None and self.model != MODEL_ADA_2:
            payload["dimensions"] = DEFAULT_DIMENSIONS
        return payload


class Embedding(BaseModel):
    index: int = 0
    embedding: Vector = Field(default_factory=list)


class EmbeddingResponse(BaseModel):
    model: str = ""
    data: list[Embedding] = Field(default_factory=list)
    usage: TokenUsage | None = None

    @property
    def vectors(self) -> list[Vector]:
        """Embeddings in input order."""
        return [item.embedding for item in sorted(self.data, key=lambda item: item.index)]


class EmbeddingsService:
    """Client for ``v1/embeddings``.

    Example:
        a, b = client.embeddings.many("cat", "kitten")
        print(cosine_similarity(a, b))
    """

    def __init__(self, transport: Transport):
        self._transport = transport

    def create(self, request: EmbeddingRequest) -> EmbeddingResponse:
        """Raises RequestError if ``request.input`` is empty."""
        if not request.input:
            raise RequestError("no inputs provided")
        data = self._transport.request("POST", EMBEDDINGS_PATH, request.to_payload())
        response = EmbeddingResponse.model_validate(data)
        if len(response.data) != len(request.input):
            raise TransportError(
                f"expected {len(request.input)} embeddings from {request.model}, got {len(response.data)}"
            )
        if response.usage:
            logger.debug(f"Embedded {len(request.input)} inputs, {response.usage.total_tokens} tokens")
        return response

    def many(self, *inputs: str, model: str = DEFAULT_EMBEDDING_MODEL) -> list[Vector]:
        return self.create(EmbeddingRequest(input=list(inputs), model=model)).vectors

    def one(self, input: str, model: str = DEFAULT_EMBEDDING_MODEL) -> Vector:
        return self.many(input, model=model)[0]


# === Vector math ===


def _check_sizes(a: Sequence[float], b: Sequence[float]) -> None:
    if len(a) != len(b):
        raise ValueError(f"vector sizes differ: {len(a)} != {len(b)}")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """1 for parallel vectors, 0 for orthogonal, -1 for opposite. 0 if either is zero."""
    _check_sizes(a, b)
    norm = math.hypot(*a) * math.hypot(*b)
    if norm == 0:
        return 0.0
    return math.fsum(x * y for x, y in zip(a, b)) / norm


def distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance."""
    _check_sizes(a, b)
    return math.dist(a, b)
