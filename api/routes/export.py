from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from readus.library import (
    LibraryServices,
    backup_library,
    export_annotations_json,
    export_markdown,
    restore_backup,
)

from api.dependencies import get_services

router = APIRouter(prefix="/export", tags=["export"])


@router.get("/markdown", response_class=PlainTextResponse)
def markdown(document_id: Optional[str] = None, services: LibraryServices = Depends(get_services)):
    return export_markdown(services.repository, document_id)


@router.get("/documents/{document_id}/annotations")
def annotations(document_id: str, services: LibraryServices = Depends(get_services)):
    return export_annotations_json(services.repository, document_id)


@router.get("/backup")
def backup(services: LibraryServices = Depends(get_services)):
    return backup_library(services.repository)


@router.post("/restore")
def restore(payload: Dict[str, Any] = Body(...), services: LibraryServices = Depends(get_services)):
    try:
        counts = restore_backup(services.repository, payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"status": "restored", **counts}
