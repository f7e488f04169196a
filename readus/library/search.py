from __future__ import annotations

from typing import List, Optional

from .models import SearchResult, SearchResultType
from .repository import LibraryRepository

SNIPPET_LENGTH = 100
UNKNOWN_DOCUMENT_TITLE = "Unknown"


def make_snippet(text: str, length: int = SNIPPET_LENGTH) -> str:
    if len(text) <= length:
        return text
    return text[:length] + "..."


def _title(title: Optional[str]) -> str:
    return title or UNKNOWN_DOCUMENT_TITLE


class SearchAggregator:
    """
    Case-insensitive substring search across documents, highlights and notes.
    Results come back grouped in that order.
    """

    def __init__(self, repository: LibraryRepository):
        self.repo = repository

    def search(self, query: str) -> List[SearchResult]:
        if not query or not query.strip():
            return []
        results: List[SearchResult] = []

        for doc in self.repo.search_documents(query):
            results.append(
                SearchResult(
                    type=SearchResultType.DOCUMENT,
                    id=doc.id,
                    document_id=doc.id,
                    document_title=doc.title,
                    text=doc.title,
                    snippet=make_snippet(doc.title),
                )
            )
        for highlight, title in self.repo.search_highlights(query):
            results.append(
                SearchResult(
                    type=SearchResultType.HIGHLIGHT,
                    id=highlight.id,
                    document_id=highlight.document_id,
                    document_title=_title(title),
                    text=highlight.text,
                    snippet=make_snippet(highlight.text),
                    position=highlight.start_position,
                )
            )
        for note, title in self.repo.search_notes(query):
            results.append(
                SearchResult(
                    type=SearchResultType.NOTE,
                    id=note.id,
                    document_id=note.document_id,
                    document_title=_title(title),
                    text=note.text,
                    snippet=make_snippet(note.text),
                    position=note.position,
                )
            )
        return results
