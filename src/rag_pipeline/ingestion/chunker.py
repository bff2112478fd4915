"""Text chunking strategies.

Three splitters share one contract: :meth:`TextSplitterBase.split` turns a
:class:`~rag_pipeline.models.Document` into an ordered list of
:class:`~rag_pipeline.models.DocumentChunk` with dense, 0-based
``chunk_index`` values.  Each splitter is also a LangChain
``TextSplitter``, so :meth:`split_text` / ``split_documents`` work on plain
strings and LangChain documents too.

Overlap is validated when the splitter is constructed, never on first use.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from collections.abc import Iterator
from typing import Any

from langchain_text_splitters import TextSplitter

from rag_pipeline.config import DEFAULT_SEPARATORS, ChunkingConfig, ChunkingStrategy
from rag_pipeline.errors import ConfigurationError
from rag_pipeline.models import Document, DocumentChunk

logger = logging.getLogger(__name__)


def _validate_window(chunk_size: int, chunk_overlap: int) -> None:
    if chunk_size <= 0:
        raise ConfigurationError(f"chunk_size must be positive, got {chunk_size}")
    if chunk_overlap < 0:
        raise ConfigurationError(f"chunk_overlap must be non-negative, got {chunk_overlap}")
    if chunk_overlap >= chunk_size:
        raise ConfigurationError(
            f"Chunk overlap must be less than chunk size "
            f"(chunk_overlap={chunk_overlap}, chunk_size={chunk_size})"
        )


class TextSplitterBase(TextSplitter):
    """Common behaviour for the chunking strategies.

    Parameters
    ----------
    chunk_size:
        Window width, in the unit the strategy measures (characters or tokens).
    chunk_overlap:
        Amount shared between consecutive chunks; must be ``< chunk_size``.
    """

    strategy: ChunkingStrategy

    def __init__(self, chunk_size: int = 512, chunk_overlap: int = 50, **kwargs: Any) -> None:
        _validate_window(chunk_size, chunk_overlap)
        super().__init__(chunk_size=chunk_size, chunk_overlap=chunk_overlap, **kwargs)

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def chunk_overlap(self) -> int:
        return self._chunk_overlap

    @abstractmethod
    def _pieces(self, text: str) -> Iterator[tuple[str, dict[str, Any]]]:
        """Yield ``(content, positional_metadata)`` pairs in source order."""

    def split_text(self, text: str) -> list[str]:
        return [content for content, _ in self._pieces(text)]

    def split(self, document: Document) -> list[DocumentChunk]:
        """Split *document* into ordered chunks carrying a copy of its metadata."""
        chunks = [
            DocumentChunk(
                document_id=document.id,
                content=content,
                metadata={**document.metadata, **positional},
                chunk_index=index,
            )
            for index, (content, positional) in enumerate(self._pieces(document.content))
        ]
        logger.debug(
            "%s split document %s (%d chars) into %d chunks",
            type(self).__name__,
            document.id,
            len(document.content),
            len(chunks),
        )
        return chunks


class CharacterSplitter(TextSplitterBase):
    """Fixed-width character windows advancing by ``chunk_size - chunk_overlap``.

    Every chunk records ``start_index`` / ``end_index`` (end exclusive).  The
    final window may be shorter than ``chunk_size``; no window is emitted
    once one has reached the end of the text.
    """

    strategy = ChunkingStrategy.CHARACTER

    def _pieces(self, text: str) -> Iterator[tuple[str, dict[str, Any]]]:
        step = self._chunk_size - self._chunk_overlap
        length = len(text)
        start = 0
        while start < length:
            end = min(start + self._chunk_size, length)
            yield text[start:end], {"start_index": start, "end_index": end}
            if end == length:
                break
            start += step


class TokenSplitter(TextSplitterBase):
    """Sliding window over whitespace-delimited tokens.

    Tokens are rejoined with a single space, so runs of whitespace in the
    source collapse.  Each chunk records its ``token_count``.
    """

    strategy = ChunkingStrategy.TOKEN

    def _pieces(self, text: str) -> Iterator[tuple[str, dict[str, Any]]]:
        tokens = text.split()
        step = self._chunk_size - self._chunk_overlap
        start = 0
        while start < len(tokens):
            end = min(start + self._chunk_size, len(tokens))
            window = tokens[start:end]
            yield " ".join(window), {"token_count": len(window)}
            if end == len(tokens):
                break
            start += step


class RecursiveSplitter(TextSplitterBase):
    """Greedy separator-hierarchy splitter.

    Segments delimited by the coarsest separator are packed into a buffer
    while it stays within ``chunk_size``; a segment that is too long on its
    own is split again with the next, finer separator.  The empty-string
    separator cuts between characters, so with the default hierarchy no
    segmented chunk exceeds ``chunk_size``.

    Overlap is applied afterwards as a prefix only: chunk ``i`` is preceded
    by the last ``chunk_overlap`` characters of chunk ``i - 1``.  The result
    is not re-checked against ``chunk_size`` and may exceed it.

    Parameters
    ----------
    separators:
        Split boundaries in priority order.  Defaults to paragraph, line,
        sentence, word, character.
    """

    strategy = ChunkingStrategy.RECURSIVE

    def __init__(
        self,
        chunk_size: int = 512,
        chunk_overlap: int = 50,
        separators: list[str] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(chunk_size=chunk_size, chunk_overlap=chunk_overlap, **kwargs)
        self._separators = list(separators) if separators else list(DEFAULT_SEPARATORS)

    @property
    def separators(self) -> list[str]:
        return list(self._separators)

    def segment(self, text: str) -> list[str]:
        """Return the chunks before the overlap pass."""
        return self._split_recursive(text, self._separators)

    def _split_recursive(self, text: str, separators: list[str]) -> list[str]:
        separator, finer = separators[0], separators[1:]
        splits = text.split(separator) if separator else list(text)

        segments: list[str] = []
        buffer = ""
        for piece in splits:
            candidate = buffer + separator + piece if buffer else piece
            if len(candidate) <= self._chunk_size:
                buffer = candidate
                continue

            if buffer:
                segments.append(buffer)
            if len(piece) > self._chunk_size and finer:
                segments.extend(self._split_recursive(piece, finer))
                buffer = ""
            else:
                buffer = piece

        if buffer:
            segments.append(buffer)
        return segments

    def _with_overlap(self, segments: list[str]) -> list[str]:
        if self._chunk_overlap == 0 or len(segments) <= 1:
            return segments
        overlapped = [segments[0]]
        for previous, current in zip(segments, segments[1:]):
            overlapped.append(previous[-self._chunk_overlap:] + current)
        return overlapped

    def _pieces(self, text: str) -> Iterator[tuple[str, dict[str, Any]]]:
        for content in self._with_overlap(self.segment(text)):
            yield content, {}


_SPLITTERS: dict[ChunkingStrategy, type[TextSplitterBase]] = {
    ChunkingStrategy.CHARACTER: CharacterSplitter,
    ChunkingStrategy.TOKEN: TokenSplitter,
    ChunkingStrategy.RECURSIVE: RecursiveSplitter,
}


def create_text_splitter(config: ChunkingConfig) -> TextSplitterBase:
    """Build the splitter named by ``config.strategy``.

    Raises
    ------
    ConfigurationError
        If the strategy is unknown or the window parameters are invalid.
    """
    raw = config.strategy.value if isinstance(config.strategy, ChunkingStrategy) else str(config.strategy)
    try:
        strategy = ChunkingStrategy(raw.lower())
    except ValueError:
        raise ConfigurationError(f"Unknown chunking strategy: {config.strategy!r}") from None

    if strategy is ChunkingStrategy.RECURSIVE:
        return RecursiveSplitter(
            chunk_size=config.chunk_size,
            chunk_overlap=config.chunk_overlap,
            separators=config.separators,
        )
    return _SPLITTERS[strategy](chunk_size=config.chunk_size, chunk_overlap=config.chunk_overlap)
