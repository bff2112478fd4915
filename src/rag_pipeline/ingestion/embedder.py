"""Embedding providers: text in, fixed-dimension vectors out.

Every provider returns exactly one vector per input text, in input order.
Backend failures are re-raised as :class:`~rag_pipeline.errors.EmbeddingError`
naming the provider.

The LangChain-backed providers accept an already-built ``client`` so callers
(and tests) can inject one; otherwise the backend library is imported when
the provider is constructed.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import math
import random
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import httpx

from rag_pipeline.errors import EmbeddingError

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)


class EmbeddingProvider(ABC):
    """Backend-agnostic embedding interface.

    Parameters
    ----------
    model:
        Model identifier reported by :meth:`get_model_name`.
    dimension:
        Length of every vector the provider produces.
    """

    provider_name: str = "embedding"

    def __init__(self, model: str, dimension: int) -> None:
        self._model = model
        self._dimension = dimension

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def dimension(self) -> int:
        return self._dimension

    def get_model_name(self) -> str:
        return self._model

    def get_dimension(self) -> int:
        return self._dimension

    # -- public API -----------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of texts."""
        if not texts:
            return []
        logger.debug("Embedding %d texts with %s (%s)", len(texts), self.provider_name, self._model)
        try:
            vectors = await self._embed_documents(texts)
        except EmbeddingError:
            raise
        except Exception as exc:
            raise EmbeddingError(self.provider_name, str(exc)) from exc
        return [list(map(float, v)) for v in vectors]

    async def embed_single(self, text: str) -> list[float]:
        """Embed one text, e.g. a search query."""
        try:
            vector = await self._embed_query(text)
        except EmbeddingError:
            raise
        except Exception as exc:
            raise EmbeddingError(self.provider_name, str(exc)) from exc
        if not vector:
            raise EmbeddingError(self.provider_name, "no embedding returned")
        return list(map(float, vector))

    async def close(self) -> None:
        """Release network resources held by the provider."""

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    async def _embed_documents(self, texts: list[str]) -> list[list[float]]: ...

    async def _embed_query(self, text: str) -> list[float]:
        vectors = await self._embed_documents([text])
        return vectors[0] if vectors else []


class MockEmbeddingProvider(EmbeddingProvider):
    """Deterministic, offline embeddings for tests and local development.

    The same text always maps to the same unit-length vector; values are
    drawn from a PRNG seeded by a SHA-256 digest of the text.
    """

    provider_name = "mock"

    def __init__(self, dimension: int = 384) -> None:
        super().__init__("mock-embedding-model", dimension)

    def embed_text(self, text: str) -> list[float]:
        seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")
        rng = random.Random(seed)
        values = [rng.random() for _ in range(self._dimension)]
        norm = math.sqrt(sum(v * v for v in values))
        return [v / norm for v in values] if norm else values

    async def _embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_text(t) for t in texts]


class LangChainEmbeddingProvider(EmbeddingProvider):
    """Adapter over any LangChain ``Embeddings`` implementation."""

    def __init__(self, client: Embeddings, model: str, dimension: int) -> None:
        super().__init__(model, dimension)
        self._client = client

    async def _embed_documents(self, texts: list[str]) -> list[list[float]]:
        return await self._client.aembed_documents(texts)

    async def _embed_query(self, text: str) -> list[float]:
        return await self._client.aembed_query(text)


class OpenAIEmbeddingProvider(LangChainEmbeddingProvider):
    """OpenAI embeddings via ``langchain_openai.OpenAIEmbeddings``.

    When *dimension* is given it is forwarded as ``dimensions`` so
    ``text-embedding-3-*`` models return vectors of that length.
    """

    provider_name = "OpenAI"
    default_model = "text-embedding-3-small"
    default_dimension = 1536

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        dimension: int | None = None,
        *,
        client: Embeddings | None = None,
    ) -> None:
        model = model or self.default_model
        if client is None:
            from langchain_openai import OpenAIEmbeddings

            kwargs: dict[str, Any] = {"model": model, "api_key": api_key}
            if dimension:
                kwargs["dimensions"] = dimension
            client = OpenAIEmbeddings(**kwargs)
        super().__init__(client, model, dimension or self.default_dimension)


class GeminiEmbeddingProvider(LangChainEmbeddingProvider):
    """Google Gemini embeddings via ``langchain_google_genai``."""

    provider_name = "Gemini"
    default_model = "models/text-embedding-004"
    default_dimension = 768

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        dimension: int | None = None,
        *,
        client: Embeddings | None = None,
    ) -> None:
        model = model or self.default_model
        if client is None:
            from langchain_google_genai import GoogleGenerativeAIEmbeddings

            client = GoogleGenerativeAIEmbeddings(model=model, google_api_key=api_key)
        super().__init__(client, model, dimension or self.default_dimension)


class HuggingFaceEmbeddingProvider(LangChainEmbeddingProvider):
    """Local sentence-transformer embeddings via ``langchain_huggingface``."""

    provider_name = "HuggingFace"
    default_model = "sentence-transformers/all-MiniLM-L6-v2"
    default_dimension = 384

    def __init__(
        self,
        model: str | None = None,
        dimension: int | None = None,
        *,
        normalize_embeddings: bool = True,
        client: Embeddings | None = None,
    ) -> None:
        model = model or self.default_model
        if client is None:
            from langchain_huggingface import HuggingFaceEmbeddings

            client = HuggingFaceEmbeddings(
                model_name=model,
                encode_kwargs={"normalize_embeddings": normalize_embeddings},
            )
        super().__init__(client, model, dimension or self.default_dimension)


# Known output sizes of common Ollama embedding models.
OLLAMA_DIMENSIONS: dict[str, int] = {
    "nomic-embed-text": 768,
    "mxbai-embed-large": 1024,
    "all-minilm": 384,
    "snowflake-arctic-embed": 1024,
}


class OllamaEmbeddingProvider(EmbeddingProvider):
    """Embeddings from a local Ollama server (``POST /api/embeddings``).

    Ollama embeds one prompt per request, so a batch is sent as concurrent
    requests and reassembled in input order.
    """

    provider_name = "Ollama"
    default_model = "nomic-embed-text"

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        dimension: int | None = None,
        *,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        model = model or self.default_model
        super().__init__(model, dimension or OLLAMA_DIMENSIONS.get(model, 768))
        self.base_url = (base_url or "http://localhost:11434").rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def _request(self, text: str) -> list[float]:
        try:
            response = await self._client.post(
                "/api/embeddings", json={"model": self._model, "prompt": text}
            )
            response.raise_for_status()
        except httpx.ConnectError as exc:
            raise EmbeddingError(
                self.provider_name,
                f"cannot connect to Ollama at {self.base_url}; is it running?",
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise EmbeddingError(
                self.provider_name,
                f"request failed with status {exc.response.status_code}: {exc.response.text}",
            ) from exc

        embedding = response.json().get("embedding")
        if not isinstance(embedding, list) or not embedding:
            raise EmbeddingError(self.provider_name, "invalid embedding response")
        return embedding

    async def _embed_documents(self, texts: list[str]) -> list[list[float]]:
        return list(await asyncio.gather(*(self._request(t) for t in texts)))

    async def _embed_query(self, text: str) -> list[float]:
        return await self._request(text)

    async def close(self) -> None:
        await self._client.aclose()
