from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Callable, Dict, Optional

from .covers import CoverGenerator
from .docx import DocxParsingEngine
from .engine import ParsingEngine, PdfParsingEngine, PlainTextParsingEngine
from .epub import EpubParsingEngine
from .errors import SourceUnavailableError
from .indexing import Indexer, NoopIndexer
from .metrics import compute_metrics
from .models import DocumentFormat, DocumentRecord, DocumentStatus, ParsedContent
from .repository import LibraryRepository
from .storage import LocalLibraryStorage

logger = logging.getLogger(__name__)

CoverScheduler = Callable[[DocumentRecord], None]


def default_engines() -> Dict[DocumentFormat, ParsingEngine]:
    return {
        DocumentFormat.PDF: PdfParsingEngine(),
        DocumentFormat.EPUB: EpubParsingEngine(),
        DocumentFormat.DOCX: DocxParsingEngine(),
        DocumentFormat.TXT: PlainTextParsingEngine(),
    }


def _strip_extension(name: str, source_suffix: str = "") -> str:
    """Drop a trailing file extension, leaving dotted titles like "Vol. 2 Notes" alone."""
    suffix = Path(name).suffix
    if suffix and (DocumentFormat.from_extension(suffix) or suffix.lower() == source_suffix.lower()):
        return name[: -len(suffix)].strip()
    return name.strip()


class DocumentImporter:
    """
    Drives one import: validate source -> copy into managed storage -> parse ->
    metrics -> persist -> index -> schedule cover.

    Parsing never fails an import; the engines degrade to placeholder content
    and the document is still created. Only an unreadable source or a store
    failure propagates.
    """

    def __init__(
        self,
        repository: LibraryRepository,
        storage: LocalLibraryStorage,
        engines: Optional[Dict[DocumentFormat, ParsingEngine]] = None,
        indexer: Optional[Indexer] = None,
        cover_scheduler: Optional[CoverScheduler] = None,
    ):
        self.repo = repository
        self.storage = storage
        self.engines = engines if engines is not None else default_engines()
        self.indexer = indexer or NoopIndexer()
        if cover_scheduler is None:
            cover_scheduler = CoverGenerator(repository, storage).generate
        self.cover_scheduler = cover_scheduler

    def import_file(self, source_path: Path, suggested_name: Optional[str] = None) -> DocumentRecord:
        source = Path(source_path)
        if not source.is_file():
            raise SourceUnavailableError(f"Source file not found or not a regular file: {source}")

        fmt, extension = self._detect_format(source, suggested_name)
        document_id = uuid.uuid4().hex
        try:
            stored_path = self.storage.save_original(document_id, source, extension)
        except OSError as exc:
            raise SourceUnavailableError(f"Could not copy {source} into the library: {exc}") from exc

        parsed = self._parse(fmt, stored_path)
        metrics = compute_metrics(parsed.countable_text, fmt)
        metadata = parsed.metadata

        document = DocumentRecord(
            id=document_id,
            title=self._resolve_title(suggested_name, metadata.title, source),
            file_path=str(stored_path),
            format=fmt,
            status=DocumentStatus.UNREAD,
            page_count=metrics.page_count,
            word_count=metrics.word_count,
            estimated_reading_time=metrics.estimated_reading_time,
            extracted_text=parsed.text,
            text_extraction_status=parsed.extraction_status,
            author=metadata.author,
            language=metadata.language,
        )
        try:
            self.repo.insert_document(document)
        except Exception:
            stored_path.unlink(missing_ok=True)
            raise
        logger.info(
            "Imported %s as %s (%s, %d words, %d pages, text %s)",
            source.name,
            document_id,
            fmt.value,
            metrics.word_count,
            metrics.page_count,
            parsed.extraction_status.value,
        )

        self._index(document, parsed)
        self._schedule_cover(document)
        return document

    def _detect_format(self, source: Path, suggested_name: Optional[str]):
        suffix = source.suffix or (Path(suggested_name).suffix if suggested_name else "")
        fmt = DocumentFormat.from_extension(suffix) if suffix else None
        if fmt is None:
            logger.warning("Unrecognised extension %r for %s; accepted as txt", suffix, source.name)
            fmt = DocumentFormat.TXT
        extension = suffix.lstrip(".").lower() or fmt.value
        return fmt, extension

    def _parse(self, fmt: DocumentFormat, path: Path) -> ParsedContent:
        engine = self.engines.get(fmt) or PlainTextParsingEngine()
        try:
            return engine.parse(path)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Parser for %s raised on %s", fmt.value, path)
            return engine.degraded(path, exc)

    def _resolve_title(self, suggested_name: Optional[str], parsed_title: Optional[str], source: Path) -> str:
        title = _strip_extension(suggested_name, source.suffix) if suggested_name else ""
        if title:
            return title
        if parsed_title and parsed_title.strip():
            return parsed_title.strip()
        return source.stem

    def _index(self, document: DocumentRecord, parsed: ParsedContent) -> None:
        if not parsed.countable_text:
            return
        try:
            self.indexer.index_document(document.id, parsed.countable_text)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Indexing failed for %s: %s", document.id, exc)

    def _schedule_cover(self, document: DocumentRecord) -> None:
        try:
            self.cover_scheduler(document)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cover scheduling failed for %s: %s", document.id, exc)
