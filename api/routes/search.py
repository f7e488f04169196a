from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends

from readus.library import LibraryServices

from api.dependencies import get_services

router = APIRouter(prefix="/search", tags=["search"])


@router.get("")
def search(query: str = "", services: LibraryServices = Depends(get_services)):
    return [asdict(r) for r in services.search.search(query)]
