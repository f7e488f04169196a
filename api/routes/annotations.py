from __future__ import annotations

import uuid
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from readus.library import HighlightRecord, LibraryServices, NoteRecord

from api.dependencies import get_services, require_document
from api.schemas import HighlightCreate, HighlightUpdate, NoteCreate, NoteUpdate

router = APIRouter(tags=["annotations"])


@router.get("/documents/{document_id}/highlights")
def list_highlights(document_id: str, services: LibraryServices = Depends(get_services)):
    require_document(services, document_id)
    return [asdict(h) for h in services.repository.list_highlights_for_document(document_id)]


@router.post("/documents/{document_id}/highlights")
def create_highlight(document_id: str, body: HighlightCreate, services: LibraryServices = Depends(get_services)):
    require_document(services, document_id)
    if body.end_position < body.start_position:
        raise HTTPException(status_code=400, detail="end_position must not precede start_position")
    highlight = HighlightRecord(id=uuid.uuid4().hex, document_id=document_id, **body.model_dump())
    services.repository.insert_highlight(highlight)
    return asdict(highlight)


@router.patch("/highlights/{highlight_id}")
def update_highlight(highlight_id: str, body: HighlightUpdate, services: LibraryServices = Depends(get_services)):
    if not services.repository.get_highlight(highlight_id):
        raise HTTPException(status_code=404, detail=f"Highlight not found: {highlight_id}")
    services.repository.update_highlight(highlight_id, **body.model_dump(exclude_unset=True))
    return asdict(services.repository.get_highlight(highlight_id))


@router.delete("/highlights/{highlight_id}")
def delete_highlight(highlight_id: str, services: LibraryServices = Depends(get_services)):
    if not services.repository.delete_highlight(highlight_id):
        raise HTTPException(status_code=404, detail=f"Highlight not found: {highlight_id}")
    return {"status": "deleted", "highlight_id": highlight_id}


@router.get("/documents/{document_id}/notes")
def list_notes(document_id: str, services: LibraryServices = Depends(get_services)):
    require_document(services, document_id)
    return [asdict(n) for n in services.repository.list_notes_for_document(document_id)]


@router.post("/documents/{document_id}/notes")
def create_note(document_id: str, body: NoteCreate, services: LibraryServices = Depends(get_services)):
    require_document(services, document_id)
    if body.highlight_id:
        highlight = services.repository.get_highlight(body.highlight_id)
        if not highlight or highlight.document_id != document_id:
            raise HTTPException(status_code=404, detail=f"Highlight not found: {body.highlight_id}")
    note = NoteRecord(id=uuid.uuid4().hex, document_id=document_id, **body.model_dump())
    services.repository.insert_note(note)
    return asdict(note)


@router.patch("/notes/{note_id}")
def update_note(note_id: str, body: NoteUpdate, services: LibraryServices = Depends(get_services)):
    if not services.repository.get_note(note_id):
        raise HTTPException(status_code=404, detail=f"Note not found: {note_id}")
    services.repository.update_note_text(note_id, body.text)
    return asdict(services.repository.get_note(note_id))


@router.delete("/notes/{note_id}")
def delete_note(note_id: str, services: LibraryServices = Depends(get_services)):
    if not services.repository.delete_note(note_id):
        raise HTTPException(status_code=404, detail=f"Note not found: {note_id}")
    return {"status": "deleted", "note_id": note_id}
