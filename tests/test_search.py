from unittest import mock

import pytest

from readus.library import (
    DocumentFormat,
    DocumentRecord,
    HighlightRecord,
    HighlightType,
    NoteRecord,
    SearchAggregator,
    SearchResultType,
)
from readus.library.search import make_snippet


@pytest.mark.parametrize("query", ["", "   ", "\n\t"])
def test_blank_query_never_touches_store(query):
    repository = mock.Mock()
    assert SearchAggregator(repository).search(query) == []
    assert repository.method_calls == []


def test_results_grouped_documents_highlights_notes(repo):
    repo.insert_document(
        DocumentRecord(id="d1", title="Zebra Stripes", file_path="/lib/python-guide.txt", format=DocumentFormat.TXT)
    )
    repo.insert_document(
        DocumentRecord(id="d2", title="Python Basics", file_path="/lib/d2.txt", format=DocumentFormat.TXT)
    )
    repo.insert_highlight(
        HighlightRecord(
            id="h1",
            document_id="d1",
            type=HighlightType.IDEA,
            text="python is readable",
            start_position=42,
            end_position=60,
            color="#FF0",
        )
    )
    repo.insert_note(NoteRecord(id="n1", document_id="d2", text="Learn PYTHON daily", position=7))

    results = SearchAggregator(repo).search("PyThOn")

    assert [(r.type, r.id) for r in results] == [
        (SearchResultType.DOCUMENT, "d2"),
        (SearchResultType.DOCUMENT, "d1"),
        (SearchResultType.HIGHLIGHT, "h1"),
        (SearchResultType.NOTE, "n1"),
    ]
    document_hit, _, highlight_hit, note_hit = results
    assert document_hit.snippet == "Python Basics"
    assert document_hit.position is None
    assert highlight_hit.document_title == "Zebra Stripes"
    assert highlight_hit.position == 42
    assert note_hit.document_title == "Python Basics"
    assert note_hit.position == 7


def test_snippet_truncates_long_text():
    text = "x" * 150
    assert make_snippet(text) == "x" * 100 + "..."
    assert make_snippet("short") == "short"
    assert make_snippet("y" * 100) == "y" * 100


def test_query_whitespace_is_part_of_the_match(repo):
    repo.insert_document(DocumentRecord(id="d1", title="catalog", file_path="/lib/d1.txt", format=DocumentFormat.TXT))
    repo.insert_document(DocumentRecord(id="d2", title="the cat", file_path="/lib/d2.txt", format=DocumentFormat.TXT))
    search = SearchAggregator(repo)

    assert [r.id for r in search.search(" cat")] == ["d2"]
    assert [r.id for r in search.search("cat")] == ["d1", "d2"]
