"""Recursive character text splitter with fixed-width overlap.

Turns :class:`~vectorqa.models.rag.RawUnit` objects into size-bounded
:class:`~vectorqa.models.rag.DocumentChunk` objects.

How a unit's text is cut:

1. **Recursive boundary search** -- the text is split on the coarsest
   separator that occurs in it (paragraph break first).  Any piece that is
   still longer than the step width (``chunk_size - chunk_overlap``) is
   split again with the next finer separator, down to single characters.
   Separators stay attached to the piece before them, so concatenating the
   pieces reproduces the text exactly.

2. **Greedy merge** -- adjacent pieces are packed together while they fit
   within the step width.  The first piece has no overlap prefix, so it may
   fill the whole ``chunk_size``; this also makes it at least
   ``chunk_overlap`` long whenever another piece follows it.

3. **Overlap** -- each chunk is its packed piece prefixed with the
   ``chunk_overlap`` characters that precede it in the text.  Two
   consecutive chunks therefore share exactly ``chunk_overlap`` characters,
   and no chunk is longer than ``chunk_size``.

The one exception to the size bound is a separator list without the empty
string: a run of text with no separator left to split on is kept whole and
a ``chunk_exceeds_size`` warning is logged.

The separator list includes the escaped forms ``"\\n\\n"`` and ``"\\n"``
because text scraped from JSON payloads often carries literal backslash-n
sequences instead of newlines.
"""

from __future__ import annotations

from typing import Sequence

import structlog

from vectorqa.models.rag import DocumentChunk, RawUnit
from vectorqa.utils.errors import ValidationError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_SEPARATORS: tuple[str, ...] = (
    "\\n\\n",
    "\n\n",
    ".\\n",
    ".\n",
    "\\n",
    "\n",
    " ",
    "",
)


def _split_keep_separator(text: str, separator: str) -> list[str]:
    parts = text.split(separator)
    pieces = [part + separator for part in parts[:-1]]
    pieces.append(parts[-1])
    return [p for p in pieces if p]


class RecursiveTextSplitter:
    """Splits text into overlapping chunks at the coarsest available boundary.

    Parameters
    ----------
    chunk_size:
        Maximum characters per chunk.
    chunk_overlap:
        Characters shared between consecutive chunks.  Must be smaller
        than *chunk_size*.
    separators:
        Boundary candidates, coarsest first.
    """

    def __init__(
        self,
        chunk_size: int = 2000,
        chunk_overlap: int = 250,
        separators: Sequence[str] = DEFAULT_SEPARATORS,
    ) -> None:
        if chunk_size <= 0:
            raise ValidationError(f"chunk_size must be positive, got {chunk_size}")
        if chunk_overlap < 0:
            raise ValidationError(f"chunk_overlap must not be negative, got {chunk_overlap}")
        if chunk_overlap >= chunk_size:
            raise ValidationError(
                f"chunk_overlap ({chunk_overlap}) must be smaller than chunk_size ({chunk_size})"
            )
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._step = chunk_size - chunk_overlap
        self._separators = tuple(separators)

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def chunk_overlap(self) -> int:
        return self._chunk_overlap

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def split(self, units: Sequence[RawUnit]) -> list[DocumentChunk]:
        """Split every unit, keeping source order.

        Each chunk inherits its unit's metadata and gains ``chunk_index``
        (position within the unit, starting at 0).
        """
        chunks: list[DocumentChunk] = []
        for unit in units:
            for index, text in enumerate(self.split_text(unit.text)):
                chunks.append(
                    DocumentChunk(text=text, metadata={**unit.metadata, "chunk_index": index})
                )

        logger.debug(
            "text_split",
            units=len(units),
            chunks=len(chunks),
            chunk_size=self._chunk_size,
            chunk_overlap=self._chunk_overlap,
        )
        return chunks

    def split_text(self, text: str) -> list[str]:
        """Split one string into overlapping chunks."""
        if not text.strip():
            return []

        pieces = self._merge(self._atomize(text, self._separators))

        chunks: list[str] = []
        offset = 0
        for piece in pieces:
            end = offset + len(piece)
            chunk = text[max(0, offset - self._chunk_overlap) : end]
            if chunk.strip():
                chunks.append(chunk)
            offset = end
        return chunks

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _atomize(self, text: str, separators: Sequence[str]) -> list[str]:
        """Cut *text* into contiguous pieces no longer than the step width."""
        if len(text) <= self._step:
            return [text]

        for position, separator in enumerate(separators):
            if separator == "":
                return [text[i : i + self._step] for i in range(0, len(text), self._step)]
            if separator not in text:
                continue

            finer = separators[position + 1 :]
            atoms: list[str] = []
            for part in _split_keep_separator(text, separator):
                if len(part) <= self._step:
                    atoms.append(part)
                else:
                    atoms.extend(self._atomize(part, finer))
            return atoms

        logger.warning(
            "chunk_exceeds_size",
            length=len(text),
            chunk_size=self._chunk_size,
            preview=text[:60],
        )
        return [text]

    def _merge(self, atoms: list[str]) -> list[str]:
        """Greedily pack adjacent atoms into pieces of at most the step width.

        The first piece may use the full chunk size.
        """
        pieces: list[str] = []
        current: list[str] = []
        size = 0
        for atom in atoms:
            width = self._step if pieces else self._chunk_size
            if current and size + len(atom) > width:
                pieces.append("".join(current))
                current, size = [], 0
            current.append(atom)
            size += len(atom)
        if current:
            pieces.append("".join(current))
        return pieces
