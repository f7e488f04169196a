from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Dict, Optional, Protocol

import fitz  # PyMuPDF
from PIL import Image

from .epub import extract_cover_image
from .models import DocumentFormat, DocumentRecord
from .repository import LibraryRepository
from .storage import LocalLibraryStorage

logger = logging.getLogger(__name__)

# Render the first PDF page at 2x so the downscaled thumbnail stays sharp.
PDF_RENDER_ZOOM = 2.0


class CoverRenderer(Protocol):
    available: bool

    def render(self, path: Path) -> Optional[Image.Image]:
        ...


class PdfCoverRenderer:
    available = True

    def render(self, path: Path) -> Optional[Image.Image]:
        doc = fitz.open(str(path))
        try:
            if doc.page_count == 0:
                return None
            pix = doc.load_page(0).get_pixmap(matrix=fitz.Matrix(PDF_RENDER_ZOOM, PDF_RENDER_ZOOM), alpha=False)
            return Image.frombytes("RGB", [pix.width, pix.height], pix.samples)
        finally:
            doc.close()


class EpubCoverRenderer:
    available = True

    def render(self, path: Path) -> Optional[Image.Image]:
        data = extract_cover_image(path)
        if not data:
            return None
        image = Image.open(io.BytesIO(data))
        image.load()
        return image


class UnavailableCoverRenderer:
    """Formats with no visual cover (plain text, DOCX)."""

    available = False

    def render(self, path: Path) -> Optional[Image.Image]:
        return None


def default_renderers() -> Dict[DocumentFormat, CoverRenderer]:
    return {
        DocumentFormat.PDF: PdfCoverRenderer(),
        DocumentFormat.EPUB: EpubCoverRenderer(),
    }


class CoverGenerator:
    """
    Produces `thumbnails/{id}.jpg` for a document and records the path on the
    document row. Runs after the import has committed; rendering failures are
    logged and leave the document without a cover.
    """

    def __init__(
        self,
        repository: LibraryRepository,
        storage: LocalLibraryStorage,
        renderers: Optional[Dict[DocumentFormat, CoverRenderer]] = None,
    ):
        self.repo = repository
        self.storage = storage
        self.renderers = renderers if renderers is not None else default_renderers()
        self._unavailable = UnavailableCoverRenderer()

    def renderer_for(self, fmt: DocumentFormat) -> CoverRenderer:
        return self.renderers.get(DocumentFormat(fmt), self._unavailable)

    def generate(self, document: DocumentRecord) -> Optional[str]:
        renderer = self.renderer_for(document.format)
        if not renderer.available:
            return None
        try:
            image = renderer.render(Path(document.file_path))
            if image is None:
                logger.info("No cover found for document %s", document.id)
                return None
            target = self.storage.write_thumbnail(document.id, image)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cover generation failed for %s: %s", document.id, exc)
            return None
        self.repo.update_document(document.id, cover_image_path=str(target))
        logger.info("Cover written for document %s at %s", document.id, target)
        return str(target)

    def generate_by_id(self, document_id: str) -> Optional[str]:
        document = self.repo.get_document(document_id)
        if document is None:
            logger.warning("Cover requested for unknown document %s", document_id)
            return None
        return self.generate(document)
