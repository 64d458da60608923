"""Sliding-window text chunking with heading breadcrumbs and page estimates.

Splits extracted document text into overlapping :class:`TextSegment` windows
sized for embedding models.

Windows are measured in whitespace-separated words: ``chunk_size`` words per
window (800 by default), advancing by ``chunk_size - overlap`` words so that
consecutive windows share ``overlap`` words (120 by default) of trailing
context.  Each window's content is the exact slice of the source text from
its first word to its last, so line breaks survive (heading detection needs
them) and stitching windows back together at their word offsets reproduces
the source.

No real tokenizer is assumed; token counts elsewhere in the pipeline are
estimated as ``words * 1.3`` (see :mod:`ragcore.utils.scoring`).
"""

from __future__ import annotations

import re

import structlog

from ragcore.models.rag import TextSegment

logger = structlog.get_logger(logger_name=__name__)

_WORD_RE = re.compile(r"\S+")

_MAX_HEADINGS = 3
_COLON_HEADING_MAX_LEN = 100
_CAPS_HEADING_MIN_LEN = 5
_CAPS_HEADING_MAX_LEN = 80


class TextChunker:
    """Splits text into overlapping word windows.

    Parameters
    ----------
    chunk_size:
        Words per window (default 800).
    overlap:
        Words shared between consecutive windows (default 120).  Must be
        smaller than *chunk_size*.
    words_per_page:
        Words assumed per page for the linear page estimate (default 500).
        ``None`` disables page estimates entirely.
    """

    def __init__(
        self,
        chunk_size: int = 800,
        overlap: int = 120,
        words_per_page: int | None = 500,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if not 0 <= overlap < chunk_size:
            raise ValueError(f"overlap must be in [0, {chunk_size}), got {overlap}")
        if words_per_page is not None and words_per_page <= 0:
            raise ValueError(f"words_per_page must be positive, got {words_per_page}")
        self._chunk_size = chunk_size
        self._overlap = overlap
        self._words_per_page = words_per_page

    @property
    def stride(self) -> int:
        """Words the window advances per step."""
        return self._chunk_size - self._overlap

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str, filename: str = "") -> list[TextSegment]:
        """Split *text* into overlapping :class:`TextSegment` windows.

        Parameters
        ----------
        text:
            The full extracted document text.
        filename:
            Source filename, used only for logging.

        Returns
        -------
        list[TextSegment]
            One segment per window.  Empty or whitespace-only input returns
            an empty list; text shorter than one window returns one segment.
        """
        spans = [m.span() for m in _WORD_RE.finditer(text)]
        if not spans:
            return []

        total = len(spans)
        segments: list[TextSegment] = []
        start = 0
        while start < total:
            end = min(start + self._chunk_size, total)
            content = text[spans[start][0] : spans[end - 1][1]]
            page_from, page_to = self._estimate_pages(start, end)
            segments.append(
                TextSegment(
                    content=content,
                    heading_path=self.extract_heading_path(content),
                    page_from=page_from,
                    page_to=page_to,
                    word_start=start,
                    word_end=end,
                )
            )
            # The window already reaches the last word: a further step would
            # only repeat overlap.
            if end >= total:
                break
            start += self.stride

        logger.debug(
            "chunking_complete",
            filename=filename,
            num_chunks=len(segments),
            total_words=total,
        )
        return segments

    # ------------------------------------------------------------------
    # Headings
    # ------------------------------------------------------------------

    @staticmethod
    def is_heading(line: str) -> bool:
        """Return ``True`` if *line* looks like a section heading.

        Recognised forms: markdown ``#`` headers, short lines ending in a
        colon, and short all-uppercase lines.
        """
        stripped = line.strip()
        if not stripped:
            return False
        if stripped.startswith("#"):
            return True
        if len(stripped) < _COLON_HEADING_MAX_LEN and stripped.endswith(":"):
            return True
        return (
            _CAPS_HEADING_MIN_LEN < len(stripped) < _CAPS_HEADING_MAX_LEN
            and stripped.isupper()
        )

    @classmethod
    def extract_heading_path(cls, content: str) -> str | None:
        """Build a ``"A > B > C"`` breadcrumb from up to three headings."""
        headings: list[str] = []
        for line in content.splitlines():
            if not cls.is_heading(line):
                continue
            heading = re.sub(r"^#+\s*", "", line.strip())
            heading = heading.removesuffix(":").strip()
            if heading:
                headings.append(heading)
            if len(headings) == _MAX_HEADINGS:
                break
        return " > ".join(headings) if headings else None

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def _estimate_pages(self, word_start: int, word_end: int) -> tuple[int | None, int | None]:
        """Linear page estimate for the half-open word range.

        Approximate only: real page boundaries are not known for extracted
        text.
        """
        if self._words_per_page is None:
            return None, None
        page_from = word_start // self._words_per_page + 1
        page_to = (word_end - 1) // self._words_per_page + 1
        return page_from, page_to
