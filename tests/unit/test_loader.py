"""Unit tests for the document loaders."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from langchain_core.documents import Document as LCDocument

from rag_pipeline.errors import LoaderError
from rag_pipeline.ingestion.loader import PdfLoader, TextFileLoader, normalize_extension


@pytest.mark.parametrize(("raw", "expected"), [("PDF", ".pdf"), (".Md", ".md"), (" txt ", ".txt")])
def test_normalize_extension(raw: str, expected: str) -> None:
    assert normalize_extension(raw) == expected


class TestTextFileLoader:
    @pytest.mark.asyncio
    async def test_load_adds_provenance(self, tmp_path) -> None:
        path = tmp_path / "Notes.MD"
        path.write_text("# Title\n\nBody with ünïcode.", encoding="utf-8")

        doc = await TextFileLoader().load(path, {"team": "search"})

        assert doc.content == "# Title\n\nBody with ünïcode."
        assert doc.metadata["team"] == "search"
        assert doc.metadata["source"] == str(path)
        assert doc.metadata["file_name"] == "Notes.MD"
        assert doc.metadata["file_type"] == ".md"
        assert "loaded_at" in doc.metadata
        assert doc.id

    @pytest.mark.asyncio
    async def test_provenance_overrides_caller_metadata(self, tmp_path) -> None:
        path = tmp_path / "a.txt"
        path.write_text("x", encoding="utf-8")

        doc = await TextFileLoader().load(path, {"source": "elsewhere"})

        assert doc.metadata["source"] == str(path)

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(LoaderError, match="Failed to load text file"):
            await TextFileLoader().load(tmp_path / "missing.txt")

    @pytest.mark.asyncio
    async def test_load_from_content(self) -> None:
        doc = await TextFileLoader().load_from_content("inline text", {"origin": "api"})
        assert doc.content == "inline text"
        assert doc.metadata["origin"] == "api"
        assert "loaded_at" in doc.metadata

    def test_supports(self) -> None:
        loader = TextFileLoader()
        assert loader.supports("md")
        assert loader.supports(".TXT")
        assert not loader.supports(".pdf")


class TestPdfLoader:
    @pytest.mark.asyncio
    async def test_pages_joined_with_blank_lines(self, tmp_path) -> None:
        pages = [LCDocument(page_content="page one"), LCDocument(page_content="page two")]
        with patch("rag_pipeline.ingestion.loader.PyPDFLoader") as loader_cls:
            loader_cls.return_value.aload = AsyncMock(return_value=pages)
            doc = await PdfLoader().load(tmp_path / "paper.pdf")

        assert doc.content == "page one\n\npage two"
        assert doc.metadata["page_count"] == 2
        assert doc.metadata["file_type"] == ".pdf"

    @pytest.mark.asyncio
    async def test_parse_failure(self, tmp_path) -> None:
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"not a pdf")
        with patch("rag_pipeline.ingestion.loader.PyPDFLoader") as loader_cls:
            loader_cls.return_value.aload = AsyncMock(side_effect=ValueError("EOF marker not found"))
            with pytest.raises(LoaderError, match="EOF marker not found"):
                await PdfLoader().load(path)

    @pytest.mark.asyncio
    async def test_raw_content_unsupported(self) -> None:
        with pytest.raises(LoaderError):
            await PdfLoader().load_from_content("text")

    def test_supports(self) -> None:
        assert PdfLoader().supports("PDF")
        assert not PdfLoader().supports(".md")
