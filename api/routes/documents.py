from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse

from readus.library import (
    DocumentFormat,
    DocumentStatus,
    LibraryServices,
    ReadingPositionRecord,
    get_epub_chapter_content,
)

from api.dependencies import document_summary, get_services, require_document
from api.schemas import DocumentUpdate, PositionUpdate

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("/import")
def import_document(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    services: LibraryServices = Depends(get_services),
):
    suffix = Path(file.filename or "").suffix
    tmp_fd, tmp_path_str = tempfile.mkstemp(suffix=suffix)
    tmp_path = Path(tmp_path_str)
    try:
        with os.fdopen(tmp_fd, "wb") as tmp_file:
            shutil.copyfileobj(file.file, tmp_file)
        importer = services.importer(
            cover_scheduler=lambda doc: background_tasks.add_task(services.covers.generate, doc)
        )
        document = importer.import_file(tmp_path, suggested_name=title or file.filename)
    finally:
        tmp_path.unlink(missing_ok=True)
    return document_summary(document)


@router.get("")
def list_documents(status: Optional[DocumentStatus] = None, services: LibraryServices = Depends(get_services)):
    repo = services.repository
    documents = repo.list_documents_by_status(status) if status else repo.list_documents()
    return [document_summary(d) for d in documents]


@router.get("/{document_id}")
def get_document(document_id: str, services: LibraryServices = Depends(get_services)):
    return asdict(require_document(services, document_id))


@router.patch("/{document_id}")
def update_document(document_id: str, body: DocumentUpdate, services: LibraryServices = Depends(get_services)):
    require_document(services, document_id)
    services.repository.update_document(document_id, **body.model_dump(exclude_unset=True))
    return document_summary(services.repository.get_document(document_id))


@router.delete("/{document_id}")
def delete_document(document_id: str, services: LibraryServices = Depends(get_services)):
    require_document(services, document_id)
    services.delete_document(document_id)
    return {"status": "deleted", "document_id": document_id}


@router.post("/{document_id}/open")
def open_document(document_id: str, services: LibraryServices = Depends(get_services)):
    require_document(services, document_id)
    services.repository.mark_document_opened(document_id)
    return document_summary(services.repository.get_document(document_id))


@router.get("/{document_id}/file")
def get_document_file(document_id: str, services: LibraryServices = Depends(get_services)):
    document = require_document(services, document_id)
    path = Path(document.file_path)
    if not path.exists():
        raise HTTPException(status_code=404, detail=f"File missing on disk for {document_id}")
    return FileResponse(path, filename=f"{document.title}.{document.format.value}")


@router.get("/{document_id}/cover")
def get_document_cover(document_id: str, services: LibraryServices = Depends(get_services)):
    document = require_document(services, document_id)
    if not document.cover_image_path or not Path(document.cover_image_path).exists():
        raise HTTPException(status_code=404, detail=f"No cover for {document_id}")
    return FileResponse(document.cover_image_path, media_type="image/jpeg")


@router.get("/{document_id}/chapters/content")
def get_chapter_content(document_id: str, href: str, services: LibraryServices = Depends(get_services)):
    document = require_document(services, document_id)
    if document.format != DocumentFormat.EPUB:
        raise HTTPException(status_code=400, detail="Chapters are only available for EPUB documents")
    return {"href": href, "html": get_epub_chapter_content(Path(document.file_path), href)}


@router.get("/{document_id}/position")
def get_position(document_id: str, services: LibraryServices = Depends(get_services)):
    require_document(services, document_id)
    position = services.repository.get_reading_position(document_id)
    return asdict(position or ReadingPositionRecord(document_id=document_id))


@router.put("/{document_id}/position")
def save_position(document_id: str, body: PositionUpdate, services: LibraryServices = Depends(get_services)):
    require_document(services, document_id)
    stored = services.repository.upsert_reading_position(
        ReadingPositionRecord(document_id=document_id, position=body.position, progress=body.progress)
    )
    return asdict(stored)


@router.get("/{document_id}/tags")
def list_document_tags(document_id: str, services: LibraryServices = Depends(get_services)):
    require_document(services, document_id)
    return [asdict(t) for t in services.repository.list_tags_for_document(document_id)]


@router.put("/{document_id}/tags/{tag_id}")
def add_document_tag(document_id: str, tag_id: str, services: LibraryServices = Depends(get_services)):
    require_document(services, document_id)
    if not services.repository.get_tag(tag_id):
        raise HTTPException(status_code=404, detail=f"Tag not found: {tag_id}")
    services.repository.add_tag_to_document(document_id, tag_id)
    return {"document_id": document_id, "tag_id": tag_id}


@router.delete("/{document_id}/tags/{tag_id}")
def remove_document_tag(document_id: str, tag_id: str, services: LibraryServices = Depends(get_services)):
    services.repository.remove_tag_from_document(document_id, tag_id)
    return {"document_id": document_id, "tag_id": tag_id}


@router.get("/{document_id}/sessions")
def list_document_sessions(document_id: str, services: LibraryServices = Depends(get_services)):
    require_document(services, document_id)
    return [asdict(s) for s in services.statistics.document_sessions(document_id)]


@router.get("/{document_id}/search")
def search_document(document_id: str, query: str, limit: int = 20, services: LibraryServices = Depends(get_services)):
    if not query or not query.strip():
        raise HTTPException(status_code=400, detail="Query must not be empty")
    require_document(services, document_id)
    hits = services.indexer.search(query, document_id=document_id, limit=limit)
    return {
        "hits": [
            {
                "paragraph_id": hit.get("paragraph_id"),
                "ordinal": int(hit.get("ordinal") or 0),
                "text": hit.get("text") or "",
            }
            for hit in hits
        ]
    }
