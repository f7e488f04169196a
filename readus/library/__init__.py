"""
Document library exports.
"""

from .archive import ArchiveReader
from .config import LibraryConfig, setup_logging
from .covers import CoverGenerator, EpubCoverRenderer, PdfCoverRenderer, UnavailableCoverRenderer
from .docx import DocxParsingEngine
from .engine import ParsingEngine, PdfParsingEngine, PlainTextParsingEngine
from .epub import EpubParsingEngine, extract_cover_image, get_epub_chapter_content
from .errors import (
    ChapterNotFoundError,
    CorruptArchiveError,
    DocumentNotFoundError,
    EntryNotFoundError,
    LibraryError,
    SourceUnavailableError,
    StoreUnavailableError,
    UnknownSessionError,
)
from .export import backup_library, dump_backup, export_annotations_json, export_markdown, restore_backup
from .importer import DocumentImporter, default_engines
from .indexing import Indexer, NoopIndexer, WhooshIndexer
from .job_queue import RQJobQueue, run_cover_job
from .metrics import compute_metrics
from .models import (
    CollectionRecord,
    DocumentFormat,
    DocumentRecord,
    DocumentStatus,
    HighlightRecord,
    HighlightType,
    NoteRecord,
    ReadingPositionRecord,
    ReadingSessionRecord,
    ReadingStats,
    SearchResult,
    SearchResultType,
    TagRecord,
    TextExtractionStatus,
)
from .repository import LibraryRepository
from .search import SearchAggregator
from .services import LibraryServices
from .statistics import ReadingStatistics
from .storage import LocalLibraryStorage, StoragePaths

__all__ = [
    "ArchiveReader",
    "ChapterNotFoundError",
    "CollectionRecord",
    "CorruptArchiveError",
    "CoverGenerator",
    "DocumentFormat",
    "DocumentImporter",
    "DocumentNotFoundError",
    "DocumentRecord",
    "DocumentStatus",
    "DocxParsingEngine",
    "EntryNotFoundError",
    "EpubCoverRenderer",
    "EpubParsingEngine",
    "HighlightRecord",
    "HighlightType",
    "Indexer",
    "LibraryConfig",
    "LibraryError",
    "LibraryRepository",
    "LibraryServices",
    "LocalLibraryStorage",
    "NoopIndexer",
    "NoteRecord",
    "ParsingEngine",
    "PdfCoverRenderer",
    "PdfParsingEngine",
    "PlainTextParsingEngine",
    "RQJobQueue",
    "ReadingPositionRecord",
    "ReadingSessionRecord",
    "ReadingStatistics",
    "ReadingStats",
    "SearchAggregator",
    "SearchResult",
    "SearchResultType",
    "SourceUnavailableError",
    "StoragePaths",
    "StoreUnavailableError",
    "TagRecord",
    "TextExtractionStatus",
    "UnavailableCoverRenderer",
    "UnknownSessionError",
    "WhooshIndexer",
    "backup_library",
    "compute_metrics",
    "default_engines",
    "dump_backup",
    "export_annotations_json",
    "export_markdown",
    "extract_cover_image",
    "get_epub_chapter_content",
    "restore_backup",
    "run_cover_job",
    "setup_logging",
]
