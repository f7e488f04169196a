from __future__ import annotations

import json
from dataclasses import asdict, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from .errors import DocumentNotFoundError
from .models import (
    DocumentFormat,
    DocumentRecord,
    DocumentStatus,
    HighlightRecord,
    HighlightType,
    NoteRecord,
    TextExtractionStatus,
    utcnow,
)
from .repository import LibraryRepository

BACKUP_VERSION = "1.0"


def _date(value: datetime) -> str:
    return value.strftime("%Y-%m-%d")


def export_markdown(repository: LibraryRepository, document_id: Optional[str] = None) -> str:
    """
    Render highlights and notes as Markdown, either for a single document
    (with a header block) or for the whole library (each entry names its source).
    """
    document = None
    if document_id is not None:
        document = repository.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        highlights = repository.list_highlights_for_document(document_id)
        notes = repository.list_notes_for_document(document_id)
    else:
        highlights = repository.list_highlights()
        notes = repository.list_notes()

    titles: Dict[str, Optional[str]] = {}

    def source_title(doc_id: str) -> Optional[str]:
        if doc_id not in titles:
            doc = repository.get_document(doc_id)
            titles[doc_id] = doc.title if doc else None
        return titles[doc_id]

    parts: List[str] = []
    if document is not None:
        parts.append(f"# {document.title}\n\n")
        parts.append(f"**Format:** {document.format.value.upper()}\n")
        parts.append(f"**Pages:** {document.page_count}\n")
        parts.append(f"**Words:** {document.word_count}\n")
        parts.append(f"**Created:** {_date(document.created_at)}\n\n")
        parts.append("---\n\n")

    if highlights:
        parts.append("## Highlights\n\n")
        for highlight in highlights:
            parts.append(f"### {highlight.type.value.capitalize()}\n\n")
            if document is None and source_title(highlight.document_id):
                parts.append(f"*From: {source_title(highlight.document_id)}*\n\n")
            parts.append(f"> {highlight.text}\n\n")
            parts.append(f"*Page {highlight.start_position}*\n\n")
            parts.append("---\n\n")

    if notes:
        parts.append("## Notes\n\n")
        for note in notes:
            if document is None and source_title(note.document_id):
                parts.append(f"### {source_title(note.document_id)}\n\n")
            parts.append(f"{note.text}\n\n")
            parts.append(f"*Created: {_date(note.created_at)}*\n\n")
            parts.append("---\n\n")

    return "".join(parts)


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def _record_to_dict(record) -> Dict[str, Any]:
    return {key: _serialize(value) for key, value in asdict(record).items()}


_ENUM_FIELDS = {
    "format": DocumentFormat,
    "status": DocumentStatus,
    "text_extraction_status": TextExtractionStatus,
    "type": HighlightType,
}


def _record_from_dict(record_cls: Type, data: Dict[str, Any]):
    kwargs = {}
    for f in fields(record_cls):
        if f.name not in data:
            continue
        value = data[f.name]
        if value is not None and f.name in _ENUM_FIELDS:
            value = _ENUM_FIELDS[f.name](value)
        elif isinstance(value, str) and f.name.endswith(("_at", "_time")):
            value = datetime.fromisoformat(value)
        kwargs[f.name] = value
    return record_cls(**kwargs)


def export_annotations_json(repository: LibraryRepository, document_id: str) -> Dict[str, Any]:
    document = repository.get_document(document_id)
    if document is None:
        raise DocumentNotFoundError(document_id)
    return {
        "document": {"id": document.id, "title": document.title, "format": document.format.value},
        "exportedAt": utcnow().isoformat(),
        "highlights": [_record_to_dict(h) for h in repository.list_highlights_for_document(document_id)],
        "notes": [_record_to_dict(n) for n in repository.list_notes_for_document(document_id)],
    }


def backup_library(repository: LibraryRepository) -> Dict[str, Any]:
    return {
        "version": BACKUP_VERSION,
        "exportedAt": utcnow().isoformat(),
        "documents": [_record_to_dict(d) for d in repository.list_documents()],
        "highlights": [_record_to_dict(h) for h in repository.list_highlights()],
        "notes": [_record_to_dict(n) for n in repository.list_notes()],
    }


def dump_backup(repository: LibraryRepository) -> str:
    return json.dumps(backup_library(repository), indent=2)


def restore_backup(repository: LibraryRepository, payload: Dict[str, Any]) -> Dict[str, int]:
    """
    Merge a backup envelope into the store. Rows are upserted by id, so
    restoring the same backup twice leaves the store unchanged. The merge is
    all-or-nothing.
    """
    version = payload.get("version")
    if version != BACKUP_VERSION:
        raise ValueError(f"Unsupported backup version: {version!r}")

    documents = [_record_from_dict(DocumentRecord, d) for d in payload.get("documents", [])]
    highlights = [_record_from_dict(HighlightRecord, h) for h in payload.get("highlights", [])]
    notes = [_record_from_dict(NoteRecord, n) for n in payload.get("notes", [])]
    repository.merge_records(documents, highlights, notes)
    return {"documents": len(documents), "highlights": len(highlights), "notes": len(notes)}
