from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query

from readus.library import LibraryServices

from api.dependencies import get_services, require_document
from api.schemas import SessionEnd, SessionStart

router = APIRouter(tags=["sessions"])


@router.post("/sessions")
def start_session(body: SessionStart, services: LibraryServices = Depends(get_services)):
    require_document(services, body.document_id)
    session_id = services.statistics.start_session(body.document_id)
    return {"session_id": session_id}


@router.post("/sessions/{session_id}/end")
def end_session(session_id: str, body: SessionEnd, services: LibraryServices = Depends(get_services)):
    # Unknown ids are a no-op on the statistics side.
    services.statistics.end_session(session_id, pages_read=body.pages_read, words_read=body.words_read)
    session = services.repository.get_session(session_id)
    return asdict(session) if session else {"session_id": session_id, "status": "unknown"}


@router.get("/sessions/{session_id}")
def get_session(session_id: str, services: LibraryServices = Depends(get_services)):
    return asdict(services.statistics.get_session(session_id))


@router.get("/stats")
def get_stats(services: LibraryServices = Depends(get_services)):
    return asdict(services.statistics.compute_stats())


@router.get("/stats/daily")
def get_daily_reading_time(days: int = Query(30, ge=1, le=366), services: LibraryServices = Depends(get_services)):
    return [asdict(d) for d in services.statistics.daily_reading_time(days)]
