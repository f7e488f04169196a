from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from readus.library import (
    CorruptArchiveError,
    DocumentNotFoundError,
    EntryNotFoundError,
    LibraryConfig,
    LibraryServices,
    SourceUnavailableError,
    StoreUnavailableError,
    UnknownSessionError,
    setup_logging,
)

from api.routes.annotations import router as annotations_router
from api.routes.documents import router as documents_router
from api.routes.export import router as export_router
from api.routes.library import router as library_router
from api.routes.search import router as search_router
from api.routes.sessions import router as sessions_router

logger = logging.getLogger(__name__)

_ERROR_STATUS = (
    (DocumentNotFoundError, 404),
    (EntryNotFoundError, 404),
    (UnknownSessionError, 404),
    (SourceUnavailableError, 400),
    (CorruptArchiveError, 400),
    (StoreUnavailableError, 503),
)


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handler


def create_app(config: Optional[LibraryConfig] = None) -> FastAPI:
    config = config or LibraryConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(config.log_level, config.log_dir)
        app.state.services = LibraryServices.build(config)
        try:
            yield
        finally:
            app.state.services.close()

    app = FastAPI(title="ReadUs Library API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    for exc_cls, status_code in _ERROR_STATUS:
        app.add_exception_handler(exc_cls, _error_handler(status_code))

    app.include_router(documents_router)
    app.include_router(annotations_router)
    app.include_router(library_router)
    app.include_router(sessions_router)
    app.include_router(search_router)
    app.include_router(export_router)

    @app.get("/healthz")
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
