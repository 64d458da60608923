"""Unit tests for the TextChunker — overlapping word windows with headings and pages."""

from __future__ import annotations

import pytest

from ragcore.services.ingestion.chunker import TextChunker
from tests.conftest import make_words

# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestWindowing:
    """Window count, sizes and overlap."""

    def test_default_windows_over_2400_words(self) -> None:
        chunker = TextChunker()
        segments = chunker.chunk(make_words(2400))

        assert len(segments) == 4
        assert [s.word_start for s in segments] == [0, 680, 1360, 2040]
        assert [s.word_end for s in segments] == [800, 1480, 2160, 2400]

    def test_short_text_yields_single_segment(self) -> None:
        text = "Just a handful of words here."
        segments = TextChunker().chunk(text)

        assert len(segments) == 1
        assert segments[0].content == text

    def test_exactly_one_window_does_not_repeat_tail(self) -> None:
        segments = TextChunker().chunk(make_words(800))
        assert len(segments) == 1

    def test_one_word_past_window_adds_second_segment(self) -> None:
        segments = TextChunker().chunk(make_words(801))

        assert len(segments) == 2
        assert segments[1].word_start == 680
        assert segments[1].content.split()[-1] == "word800"

    def test_empty_and_whitespace_input(self) -> None:
        chunker = TextChunker()
        assert chunker.chunk("") == []
        assert chunker.chunk("   \n\t  ") == []

    def test_consecutive_segments_share_overlap(self) -> None:
        chunker = TextChunker(chunk_size=50, overlap=10)
        segments = chunker.chunk(make_words(200))

        for prev, nxt in zip(segments, segments[1:]):
            assert prev.content.split()[-10:] == nxt.content.split()[:10]

    def test_every_word_is_covered(self) -> None:
        text = make_words(1234)
        chunker = TextChunker(chunk_size=100, overlap=25)
        segments = chunker.chunk(text)

        covered: set[str] = set()
        for segment in segments:
            covered.update(segment.content.split())
        assert covered == set(text.split())

    def test_no_segment_exceeds_chunk_size(self) -> None:
        chunker = TextChunker(chunk_size=64, overlap=8)
        for segment in chunker.chunk(make_words(500)):
            assert len(segment.content.split()) <= 64

    def test_content_preserves_line_breaks(self) -> None:
        text = "Intro:\nfirst line\n\nsecond paragraph"
        segments = TextChunker().chunk(text)
        assert segments[0].content == text

    def test_stride(self) -> None:
        assert TextChunker().stride == 680
        assert TextChunker(chunk_size=10, overlap=0).stride == 10


class TestValidation:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"chunk_size": 0},
            {"chunk_size": 100, "overlap": 100},
            {"chunk_size": 100, "overlap": -1},
            {"words_per_page": 0},
        ],
    )
    def test_invalid_configuration_rejected(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            TextChunker(**kwargs)


class TestHeadings:
    """Heading detection and breadcrumb extraction."""

    @pytest.mark.parametrize(
        "line",
        [
            "# Introduction",
            "### Deeply nested",
            "Boundaries:",
            "SECTION TWO OVERVIEW",
            "  CHAPTER 3  ",
        ],
    )
    def test_recognised_headings(self, line: str) -> None:
        assert TextChunker.is_heading(line) is True

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "A normal sentence of prose.",
            "Note: colons in the middle do not count",
            "SHORT",
            "x" * 120 + ":",
            "A" * 90,
        ],
    )
    def test_non_headings(self, line: str) -> None:
        assert TextChunker.is_heading(line) is False

    def test_heading_path_from_sample(self, sample_guide_text: str) -> None:
        segments = TextChunker().chunk(sample_guide_text)
        assert segments[0].heading_path == (
            "Co-Parenting Guide > SECTION TWO OVERVIEW > Boundaries"
        )

    def test_heading_path_caps_at_three(self) -> None:
        content = "# One\n# Two\n# Three\n# Four\nbody text"
        assert TextChunker.extract_heading_path(content) == "One > Two > Three"

    def test_no_headings_gives_none(self) -> None:
        assert TextChunker.extract_heading_path("plain prose without structure") is None


class TestPageEstimates:
    def test_default_pages(self) -> None:
        segments = TextChunker().chunk(make_words(2400))

        assert (segments[0].page_from, segments[0].page_to) == (1, 2)
        assert (segments[1].page_from, segments[1].page_to) == (2, 3)
        assert (segments[3].page_from, segments[3].page_to) == (5, 5)

    def test_pages_never_decrease(self) -> None:
        segments = TextChunker(chunk_size=120, overlap=20, words_per_page=100).chunk(
            make_words(1000)
        )
        for segment in segments:
            assert segment.page_from <= segment.page_to
        starts = [s.page_from for s in segments]
        assert starts == sorted(starts)

    def test_pages_disabled(self) -> None:
        segments = TextChunker(words_per_page=None).chunk(make_words(900))
        assert all(s.page_from is None and s.page_to is None for s in segments)
