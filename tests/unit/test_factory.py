"""Unit tests for provider selection."""

from __future__ import annotations

import re
from unittest.mock import patch

import pytest

from rag_pipeline.config import EmbeddingConfig, LoaderConfig, VectorStoreConfig
from rag_pipeline.errors import ConfigurationError
from rag_pipeline.factory import ProviderFactory
from rag_pipeline.ingestion.embedder import (
    GeminiEmbeddingProvider,
    MockEmbeddingProvider,
    OllamaEmbeddingProvider,
    OpenAIEmbeddingProvider,
)
from rag_pipeline.ingestion.loader import PdfLoader, TextFileLoader
from rag_pipeline.retrieval.filesystem_store import FileSystemVectorStore
from rag_pipeline.retrieval.memory_store import InMemoryVectorStore


class TestVectorStores:
    def test_in_memory(self) -> None:
        assert isinstance(ProviderFactory.create_vector_store(VectorStoreConfig()), InMemoryVectorStore)

    def test_filesystem(self, tmp_path) -> None:
        store = ProviderFactory.create_vector_store(
            VectorStoreConfig(provider="filesystem", storage_path=str(tmp_path))
        )
        assert isinstance(store, FileSystemVectorStore)
        assert store.storage_path == tmp_path

    def test_filesystem_requires_path(self) -> None:
        with pytest.raises(ConfigurationError, match="storage_path"):
            ProviderFactory.create_vector_store(VectorStoreConfig(provider="filesystem"))

    def test_postgres(self) -> None:
        config = VectorStoreConfig(
            provider="postgres", host="db", database="rag", user="rag", password="secret", table="chunks"
        )
        with patch("rag_pipeline.retrieval.postgres_store.AsyncConnectionPool") as pool_cls:
            store = ProviderFactory.create_vector_store(config)

        assert store.table_name == "chunks"
        assert pool_cls.call_args.kwargs["max_size"] == 10
        assert pool_cls.call_args.kwargs["open"] is False

    def test_postgres_requires_credentials(self) -> None:
        with pytest.raises(ConfigurationError, match="password"):
            ProviderFactory.create_vector_store(
                VectorStoreConfig(provider="postgres", host="db", database="rag", user="rag")
            )

    @pytest.mark.parametrize("provider", ["pinecone", "weaviate", "qdrant"])
    def test_planned_providers(self, provider: str) -> None:
        with pytest.raises(ConfigurationError, match="not yet implemented"):
            ProviderFactory.create_vector_store(VectorStoreConfig(provider=provider))

    def test_unknown_provider(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown vector store provider"):
            ProviderFactory.create_vector_store(VectorStoreConfig(provider="redis"))


class TestEmbeddingProviders:
    def test_mock(self) -> None:
        provider = ProviderFactory.create_embedding_provider(EmbeddingConfig(provider="mock", dimension=12))
        assert isinstance(provider, MockEmbeddingProvider)
        assert provider.get_dimension() == 12

    def test_mock_default_dimension(self) -> None:
        assert ProviderFactory.create_embedding_provider(EmbeddingConfig()).get_dimension() == 384

    def test_openai(self) -> None:
        with patch("langchain_openai.OpenAIEmbeddings") as client_cls:
            provider = ProviderFactory.create_embedding_provider(
                EmbeddingConfig(provider="OpenAI", api_key="sk-test", dimension=256)
            )
        assert isinstance(provider, OpenAIEmbeddingProvider)
        client_cls.assert_called_once_with(model="text-embedding-3-small", api_key="sk-test", dimensions=256)

    def test_gemini(self) -> None:
        with patch("langchain_google_genai.GoogleGenerativeAIEmbeddings") as client_cls:
            provider = ProviderFactory.create_embedding_provider(
                EmbeddingConfig(provider="gemini", api_key="g-key")
            )
        assert isinstance(provider, GeminiEmbeddingProvider)
        client_cls.assert_called_once_with(model="models/text-embedding-004", google_api_key="g-key")

    @pytest.mark.parametrize("provider", ["openai", "gemini"])
    def test_hosted_providers_require_api_key(self, provider: str) -> None:
        with pytest.raises(ConfigurationError, match="api_key"):
            ProviderFactory.create_embedding_provider(EmbeddingConfig(provider=provider))

    def test_ollama(self) -> None:
        provider = ProviderFactory.create_embedding_provider(
            EmbeddingConfig(provider="ollama", base_url="http://gpu-box:11434/", model="all-minilm")
        )
        assert isinstance(provider, OllamaEmbeddingProvider)
        assert provider.base_url == "http://gpu-box:11434"
        assert provider.get_dimension() == 384

    def test_planned_provider(self) -> None:
        with pytest.raises(ConfigurationError, match="not yet implemented"):
            ProviderFactory.create_embedding_provider(EmbeddingConfig(provider="cohere"))

    def test_unknown_provider(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown embedding provider"):
            ProviderFactory.create_embedding_provider(EmbeddingConfig(provider="word2vec"))


class TestLoaders:
    @pytest.mark.parametrize("loader_type", ["text", "markdown"])
    def test_text_loaders(self, loader_type: str) -> None:
        assert isinstance(ProviderFactory.create_document_loader(LoaderConfig(type=loader_type)), TextFileLoader)

    def test_pdf_loader(self) -> None:
        assert isinstance(ProviderFactory.create_document_loader(LoaderConfig(type="pdf")), PdfLoader)

    def test_planned_loader(self) -> None:
        with pytest.raises(ConfigurationError, match="not yet implemented"):
            ProviderFactory.create_document_loader(LoaderConfig(type="json"))

    def test_unknown_loader(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown document loader"):
            ProviderFactory.create_document_loader(LoaderConfig(type="docx"))

    @pytest.mark.parametrize(
        ("path", "expected"),
        [("notes.txt", TextFileLoader), ("README.MD", TextFileLoader), ("paper.pdf", PdfLoader)],
    )
    def test_loader_for_file(self, path: str, expected: type) -> None:
        assert isinstance(ProviderFactory.get_loader_for_file(path), expected)

    @pytest.mark.parametrize(("path", "shown"), [("report.docx", ".docx"), ("Makefile", "(none)")])
    def test_no_loader_for_extension(self, path: str, shown: str) -> None:
        with pytest.raises(ConfigurationError, match=re.escape(f"No loader available for file extension: {shown}")):
            ProviderFactory.get_loader_for_file(path)
