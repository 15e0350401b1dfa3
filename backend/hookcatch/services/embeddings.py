"""Text embedding backends.

``HttpEmbedder`` talks to an OpenAI-compatible ``/embeddings`` endpoint.
``HashingEmbedder`` is a local feature-hashing embedder that needs no
network access; it captures word overlap only and is meant for development
and tests.
"""

import hashlib
import logging
import re
from typing import Any, Protocol

import httpx
import numpy as np

from hookcatch.core.config import Settings

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


class EmbeddingError(Exception):
    """Raised when the embedding backend fails or answers unexpectedly."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class Embedder(Protocol):
    async def embed(self, texts: list[str]) -> list[list[float]]: ...

    async def close(self) -> None: ...


class HashingEmbedder:
    """Bag-of-words feature hashing into a fixed number of dimensions."""

    def __init__(self, dimensions: int = 384):
        if dimensions <= 0:
            raise ValueError("dimensions must be positive")
        self.dimensions = dimensions

    def _embed_one(self, text: str) -> list[float]:
        vector = np.zeros(self.dimensions, dtype=np.float64)
        for token in _TOKEN_RE.findall(text.lower()):
            digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
            value = int.from_bytes(digest, "big")
            sign = 1.0 if value >> 63 else -1.0
            vector[value % self.dimensions] += sign
        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector.tolist()

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [self._embed_one(text) for text in texts]

    async def close(self) -> None:
        return None


class HttpEmbedder:
    """Client for an OpenAI-compatible embeddings API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            headers = {"Content-Type": "application/json"}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=httpx.Timeout(self.timeout),
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed ``texts`` and return one vector per input, in input order."""
        if not texts:
            return []
        client = await self._get_client()
        try:
            response = await client.post("/embeddings", json={"model": self.model, "input": texts})
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise EmbeddingError(
                f"Embedding request failed: {exc.response.status_code}",
                exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc

        payload: dict[str, Any] = response.json()
        data = payload.get("data")
        if not isinstance(data, list) or len(data) != len(texts):
            raise EmbeddingError("Embedding response did not contain one vector per input")
        ordered = sorted(data, key=lambda item: int(item.get("index", 0)))
        return [[float(x) for x in item["embedding"]] for item in ordered]


def build_embedder(config: Settings) -> Embedder:
    """Create the embedder selected by ``EMBEDDING_BACKEND``."""
    backend = config.EMBEDDING_BACKEND.lower()
    if backend == "http":
        logger.info("Using HTTP embedder (model %s)", config.EMBEDDING_MODEL)
        return HttpEmbedder(
            base_url=config.EMBEDDING_API_URL,
            api_key=config.EMBEDDING_API_KEY,
            model=config.EMBEDDING_MODEL,
            timeout=config.EMBEDDING_TIMEOUT_SECONDS,
        )
    if backend == "hashing":
        logger.info("Using hashing embedder (%d dimensions)", config.EMBEDDING_DIMENSIONS)
        return HashingEmbedder(config.EMBEDDING_DIMENSIONS)
    raise ValueError(f"Unknown embedding backend: {config.EMBEDDING_BACKEND}")
