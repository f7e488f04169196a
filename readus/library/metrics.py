from __future__ import annotations

import math
from typing import Optional

from .models import DocumentFormat, DocumentMetrics

WORDS_PER_MINUTE = 200
WORDS_PER_PAGE = 250

# Used when nothing could be extracted, so a document never shows "0 pages".
FALLBACK_PAGE_COUNTS = {
    DocumentFormat.PDF: 10,
    DocumentFormat.EPUB: 5,
    DocumentFormat.DOCX: 5,
    DocumentFormat.TXT: 1,
}


def count_words(text: Optional[str]) -> int:
    if not text or not text.strip():
        return 0
    return len(text.split())


def estimate_reading_time(word_count: int) -> int:
    return math.ceil(word_count / WORDS_PER_MINUTE)


def estimate_page_count(word_count: int, fmt: DocumentFormat) -> int:
    if word_count > 0:
        return max(1, math.ceil(word_count / WORDS_PER_PAGE))
    return FALLBACK_PAGE_COUNTS.get(fmt, 1)


def compute_metrics(text: Optional[str], fmt: DocumentFormat) -> DocumentMetrics:
    """
    Derive word count, page estimate and reading time (minutes) from the
    canonical text of a document. Pure function; no I/O.
    """
    word_count = count_words(text)
    return DocumentMetrics(
        word_count=word_count,
        page_count=estimate_page_count(word_count, fmt),
        estimated_reading_time=estimate_reading_time(word_count),
    )
