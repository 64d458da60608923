"""Token estimation and relevance scoring shared by the chunker and the stores.

No real tokenizer is assumed: token counts are approximated as
``words * 1.3`` everywhere (chunk token counts, context budgets), so the
numbers produced at ingestion time and at assembly time agree.

Vector relevance is cosine similarity clamped to ``[0, 1]``.  Keyword
relevance is BM25 over the search's candidate chunks, scaled so the best
match scores 1.0, so the two can be blended with a single weight.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence

import numpy as np
from rank_bm25 import BM25Okapi

TOKENS_PER_WORD = 1.3

_TERM_RE = re.compile(r"\w+")


def count_words(text: str) -> int:
    """Return the number of whitespace-separated words in *text*."""
    return len(text.split())


def estimate_tokens(text: str) -> int:
    """Approximate the language-model token count of *text*."""
    return math.ceil(count_words(text) * TOKENS_PER_WORD)


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Return ``1 - cosine distance`` between two vectors, clamped to [0, 1].

    Zero-length or mismatched vectors score 0.
    """
    va = np.asarray(a, dtype=np.float32)
    vb = np.asarray(b, dtype=np.float32)
    if va.shape != vb.shape or va.size == 0:
        return 0.0
    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0
    similarity = float(np.dot(va, vb)) / norm
    return max(0.0, min(1.0, similarity))


def tokenize(text: str) -> list[str]:
    """Split *text* into case-folded word tokens (any script)."""
    return _TERM_RE.findall(text.casefold())


class _LuceneIdfBM25(BM25Okapi):
    """BM25Okapi with Lucene's always-positive IDF.

    Okapi IDF is negative for terms found in more than half the corpus,
    which for a per-user corpus of a few chunks is most terms.
    """

    def _calc_idf(self, nd: dict[str, int]) -> None:
        for word, freq in nd.items():
            self.idf[word] = math.log(1.0 + (self.corpus_size - freq + 0.5) / (freq + 0.5))


def keyword_scores(query: str, contents: Sequence[str]) -> list[float]:
    """BM25 relevance of each of *contents* to *query*, scaled into ``[0, 1]``.

    IDF statistics come from *contents* itself, i.e. the candidate chunks
    of one search.  Scores are divided by the best score so the top match
    is 1.0; chunks sharing no term with the query score 0.0.
    """
    terms = list(dict.fromkeys(tokenize(query)))
    corpus = [tokenize(c) for c in contents]
    if not terms or not any(corpus):
        return [0.0] * len(contents)

    raw = _LuceneIdfBM25(corpus).get_scores(terms)
    top = float(np.max(raw))
    if top <= 0.0:
        return [0.0] * len(contents)
    return [min(1.0, max(0.0, float(s) / top)) for s in raw]
