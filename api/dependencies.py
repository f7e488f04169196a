from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

from fastapi import HTTPException, Request

from readus.library import DocumentRecord, LibraryServices


def get_services(request: Request) -> LibraryServices:
    return request.app.state.services


def require_document(services: LibraryServices, document_id: str) -> DocumentRecord:
    document = services.repository.get_document(document_id)
    if not document:
        raise HTTPException(status_code=404, detail=f"Document not found: {document_id}")
    return document


def document_summary(document: DocumentRecord) -> Dict[str, Any]:
    """Document payload for list views; the extracted text is left out."""
    payload = asdict(document)
    payload.pop("extracted_text", None)
    return payload
