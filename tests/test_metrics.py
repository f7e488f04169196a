import pytest

from readus.library import DocumentFormat, compute_metrics
from readus.library.metrics import count_words, estimate_page_count, estimate_reading_time


def test_counts_whitespace_separated_tokens():
    assert count_words("  one two\nthree\t four  ") == 4
    assert count_words("") == 0
    assert count_words("   \n ") == 0
    assert count_words(None) == 0


def test_400_words():
    metrics = compute_metrics(" ".join(["word"] * 400), DocumentFormat.TXT)
    assert metrics.word_count == 400
    assert metrics.page_count == 2
    assert metrics.estimated_reading_time == 2


def test_reading_time_rounds_up():
    assert estimate_reading_time(1) == 1
    assert estimate_reading_time(200) == 1
    assert estimate_reading_time(201) == 2
    assert estimate_reading_time(0) == 0


@pytest.mark.parametrize(
    "fmt, expected",
    [
        (DocumentFormat.PDF, 10),
        (DocumentFormat.EPUB, 5),
        (DocumentFormat.DOCX, 5),
        (DocumentFormat.TXT, 1),
    ],
)
def test_fallback_page_count_without_text(fmt, expected):
    assert estimate_page_count(0, fmt) == expected


def test_short_text_is_at_least_one_page():
    assert estimate_page_count(3, DocumentFormat.PDF) == 1
