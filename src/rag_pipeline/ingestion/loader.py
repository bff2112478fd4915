"""Document loaders: thin wrappers around LangChain document loaders.

Each loader turns a file (or raw text) into a single
:class:`~rag_pipeline.models.Document`, adding provenance metadata.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from langchain_community.document_loaders import PyPDFLoader, TextLoader

from rag_pipeline.errors import LoaderError
from rag_pipeline.models import Document


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_extension(extension: str) -> str:
    """Return *extension* lower-cased with a leading dot (``"PDF"`` → ``".pdf"``)."""
    extension = extension.lower().strip()
    return extension if extension.startswith(".") else f".{extension}"


class DocumentLoader(ABC):
    """Source of :class:`Document` objects for one family of file types."""

    supported_extensions: tuple[str, ...] = ()

    @abstractmethod
    async def load(self, path: str | Path, metadata: dict[str, Any] | None = None) -> Document:
        """Read the file at *path*; *metadata* is merged under the provenance keys."""

    @abstractmethod
    async def load_from_content(self, content: str, metadata: dict[str, Any] | None = None) -> Document:
        """Wrap already-extracted *content* in a :class:`Document`."""

    def supports(self, extension: str) -> bool:
        return normalize_extension(extension) in self.supported_extensions

    @staticmethod
    def _file_metadata(path: Path, metadata: dict[str, Any] | None) -> dict[str, Any]:
        return {
            **(metadata or {}),
            "source": str(path),
            "file_name": path.name,
            "file_type": path.suffix.lower(),
            "loaded_at": _now_iso(),
        }


class TextFileLoader(DocumentLoader):
    """Plain-text and Markdown files, read as UTF-8."""

    supported_extensions = (".txt", ".md", ".markdown", ".text")

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    async def load(self, path: str | Path, metadata: dict[str, Any] | None = None) -> Document:
        path = Path(path)
        try:
            pages = await TextLoader(str(path), encoding=self.encoding).aload()
        except Exception as exc:
            raise LoaderError(f"Failed to load text file {path}: {exc}") from exc
        content = "".join(page.page_content for page in pages)
        return Document(content=content, metadata=self._file_metadata(path, metadata))

    async def load_from_content(self, content: str, metadata: dict[str, Any] | None = None) -> Document:
        return Document(content=content, metadata={**(metadata or {}), "loaded_at": _now_iso()})


class PdfLoader(DocumentLoader):
    """PDF files via ``PyPDFLoader``; pages are joined with blank lines."""

    supported_extensions = (".pdf",)

    async def load(self, path: str | Path, metadata: dict[str, Any] | None = None) -> Document:
        path = Path(path)
        try:
            pages = await PyPDFLoader(str(path)).aload()
        except Exception as exc:
            raise LoaderError(f"Failed to load PDF {path}: {exc}") from exc
        content = "\n\n".join(page.page_content for page in pages)
        meta = self._file_metadata(path, metadata)
        meta["page_count"] = len(pages)
        return Document(content=content, metadata=meta)

    async def load_from_content(self, content: str, metadata: dict[str, Any] | None = None) -> Document:
        raise LoaderError("PdfLoader does not support loading from raw content")
