"""Unit tests for the embedding providers."""

from __future__ import annotations

import json
import math
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from rag_pipeline.errors import EmbeddingError
from rag_pipeline.ingestion.embedder import (
    GeminiEmbeddingProvider,
    HuggingFaceEmbeddingProvider,
    MockEmbeddingProvider,
    OllamaEmbeddingProvider,
    OpenAIEmbeddingProvider,
)


# ── Mock provider ───────────────────────────────────────────────────────


class TestMockEmbeddingProvider:
    @pytest.mark.asyncio
    async def test_deterministic(self) -> None:
        provider = MockEmbeddingProvider(dimension=32)
        first = await provider.embed(["same text"])
        second = await MockEmbeddingProvider(dimension=32).embed(["same text"])
        assert first == second

    @pytest.mark.asyncio
    async def test_unit_length_and_dimension(self) -> None:
        provider = MockEmbeddingProvider(dimension=32)
        [vector] = await provider.embed(["hello"])
        assert len(vector) == 32
        assert math.sqrt(sum(v * v for v in vector)) == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_different_texts_differ(self) -> None:
        a, b = await MockEmbeddingProvider(dimension=8).embed(["alpha", "beta"])
        assert a != b

    @pytest.mark.asyncio
    async def test_one_vector_per_text_in_order(self) -> None:
        provider = MockEmbeddingProvider(dimension=8)
        texts = ["a", "b", "c"]
        assert await provider.embed(texts) == [provider.embed_text(t) for t in texts]

    @pytest.mark.asyncio
    async def test_empty_batch(self) -> None:
        assert await MockEmbeddingProvider().embed([]) == []

    @pytest.mark.asyncio
    async def test_embed_single_matches_batch(self) -> None:
        provider = MockEmbeddingProvider(dimension=8)
        assert await provider.embed_single("q") == (await provider.embed(["q"]))[0]

    def test_metadata(self) -> None:
        provider = MockEmbeddingProvider()
        assert provider.get_dimension() == 384
        assert provider.get_model_name() == "mock-embedding-model"


# ── LangChain-backed providers ─────────────────────────────────────────


def _client(documents=None, query=None) -> MagicMock:
    client = MagicMock()
    client.aembed_documents = AsyncMock(return_value=documents or [])
    client.aembed_query = AsyncMock(return_value=query or [])
    return client


class TestLangChainProviders:
    @pytest.mark.asyncio
    async def test_delegates_to_client(self) -> None:
        client = _client(documents=[[1, 2], [3, 4]], query=[5, 6])
        provider = OpenAIEmbeddingProvider("sk-test", client=client)

        assert await provider.embed(["a", "b"]) == [[1.0, 2.0], [3.0, 4.0]]
        assert await provider.embed_single("q") == [5.0, 6.0]
        client.aembed_documents.assert_awaited_once_with(["a", "b"])
        client.aembed_query.assert_awaited_once_with("q")

    @pytest.mark.asyncio
    async def test_backend_error_names_provider(self) -> None:
        client = _client()
        client.aembed_documents.side_effect = RuntimeError("rate limited")
        provider = OpenAIEmbeddingProvider("sk-test", client=client)

        with pytest.raises(EmbeddingError, match="OpenAI embedding failed: rate limited") as exc_info:
            await provider.embed(["a"])

        assert exc_info.value.provider == "OpenAI"

    @pytest.mark.asyncio
    async def test_empty_query_embedding_is_an_error(self) -> None:
        provider = GeminiEmbeddingProvider("key", client=_client(query=[]))
        with pytest.raises(EmbeddingError, match="no embedding returned"):
            await provider.embed_single("q")

    def test_defaults(self) -> None:
        openai = OpenAIEmbeddingProvider("sk-test", client=_client())
        gemini = GeminiEmbeddingProvider("key", client=_client())
        hf = HuggingFaceEmbeddingProvider(client=_client())

        assert (openai.get_model_name(), openai.get_dimension()) == ("text-embedding-3-small", 1536)
        assert (gemini.get_model_name(), gemini.get_dimension()) == ("models/text-embedding-004", 768)
        assert hf.get_dimension() == 384

    def test_explicit_dimension_wins(self) -> None:
        provider = OpenAIEmbeddingProvider("sk-test", model="text-embedding-3-large", dimension=256, client=_client())
        assert provider.get_model_name() == "text-embedding-3-large"
        assert provider.get_dimension() == 256


# ── Ollama ─────────────────────────────────────────────────────────────


def _ollama(handler) -> OllamaEmbeddingProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://ollama.test")
    return OllamaEmbeddingProvider(base_url="http://ollama.test", client=client)


class TestOllamaEmbeddingProvider:
    @pytest.mark.asyncio
    async def test_batch_keeps_input_order(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            seen.append(body)
            assert request.url.path == "/api/embeddings"
            return httpx.Response(200, json={"embedding": [float(len(body["prompt"])), 1.0]})

        provider = _ollama(handler)
        vectors = await provider.embed(["a", "bbb", "cc"])
        await provider.close()

        assert vectors == [[1.0, 1.0], [3.0, 1.0], [2.0, 1.0]]
        assert {b["model"] for b in seen} == {"nomic-embed-text"}

    @pytest.mark.asyncio
    async def test_http_error_status(self) -> None:
        provider = _ollama(lambda request: httpx.Response(500, text="model not loaded"))
        with pytest.raises(EmbeddingError, match="status 500"):
            await provider.embed(["a"])

    @pytest.mark.asyncio
    async def test_connection_refused(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        provider = _ollama(handler)
        with pytest.raises(EmbeddingError, match="cannot connect to Ollama at http://ollama.test"):
            await provider.embed_single("a")

    @pytest.mark.asyncio
    async def test_missing_embedding_field(self) -> None:
        provider = _ollama(lambda request: httpx.Response(200, json={"error": "nope"}))
        with pytest.raises(EmbeddingError, match="invalid embedding response"):
            await provider.embed(["a"])

    def test_dimension_from_known_models(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        assert OllamaEmbeddingProvider(model="mxbai-embed-large", client=client).get_dimension() == 1024
        assert OllamaEmbeddingProvider(model="custom-model", client=client).get_dimension() == 768
        assert OllamaEmbeddingProvider(model="custom-model", dimension=42, client=client).get_dimension() == 42
