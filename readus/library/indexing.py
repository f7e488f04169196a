from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from whoosh import index
from whoosh.fields import ID, NUMERIC, TEXT, Schema
from whoosh.qparser import QueryParser
from whoosh.query import Term

_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")


def split_paragraphs(text: str) -> List[str]:
    return [p.strip() for p in _PARAGRAPH_SPLIT.split(text or "") if p.strip()]


class Indexer(Protocol):
    def index_document(self, document_id: str, text: str) -> None:
        ...

    def delete_document(self, document_id: str) -> None:
        ...


class NoopIndexer:
    """
    Default indexer stub. Keeps the import pipeline wired without Whoosh.
    """

    def index_document(self, document_id: str, text: str) -> None:
        return None

    def delete_document(self, document_id: str) -> None:
        return None

    def search(self, query_str: str, document_id: Optional[str] = None, limit: int = 10) -> List[Dict]:
        return []


class WhooshIndexer:
    """
    File-system backed Whoosh index over the extracted text of each document,
    one entry per paragraph. Re-indexing a document first deletes its entries.
    """

    def __init__(self, index_dir: Path):
        self.index_dir = Path(index_dir)
        self.index_dir.mkdir(parents=True, exist_ok=True)
        self.schema = Schema(
            document_id=ID(stored=True),
            paragraph_id=ID(stored=True, unique=True),
            ordinal=NUMERIC(stored=True, sortable=True),
            text=TEXT(stored=True),
        )
        if index.exists_in(self.index_dir):
            self.ix = index.open_dir(self.index_dir)
        else:
            self.ix = index.create_in(self.index_dir, self.schema)

    def index_document(self, document_id: str, text: str) -> None:
        writer = self.ix.writer()
        writer.delete_by_term("document_id", document_id)
        for ordinal, paragraph in enumerate(split_paragraphs(text)):
            writer.add_document(
                document_id=document_id,
                paragraph_id=f"{document_id}:{ordinal}",
                ordinal=ordinal,
                text=paragraph,
            )
        writer.commit()

    def delete_document(self, document_id: str) -> None:
        writer = self.ix.writer()
        writer.delete_by_term("document_id", document_id)
        writer.commit()

    def search(self, query_str: str, document_id: Optional[str] = None, limit: int = 10) -> List[Dict]:
        """
        Return a list of plain dicts so callers are safe after the searcher closes.
        """
        if not query_str or not query_str.strip():
            return []
        q = QueryParser("text", schema=self.schema).parse(query_str)
        with self.ix.searcher() as searcher:
            filter_q = Term("document_id", document_id) if document_id else None
            results = searcher.search(q, limit=limit, filter=filter_q)
            hits = []
            for hit in results:
                fields = hit.fields()
                hits.append(
                    {
                        "document_id": fields.get("document_id"),
                        "paragraph_id": fields.get("paragraph_id"),
                        "ordinal": fields.get("ordinal"),
                        "text": fields.get("text"),
                        "score": hit.score,
                    }
                )
            return hits
