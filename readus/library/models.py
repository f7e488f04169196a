from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional


def utcnow() -> datetime:
    """Naive UTC timestamp; every stored datetime uses this reference."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class DocumentFormat(str, Enum):
    PDF = "pdf"
    EPUB = "epub"
    TXT = "txt"
    DOCX = "docx"

    @classmethod
    def from_extension(cls, extension: str) -> Optional["DocumentFormat"]:
        ext = extension.lower().lstrip(".")
        for fmt in cls:
            if fmt.value == ext:
                return fmt
        return None


class DocumentStatus(str, Enum):
    UNREAD = "unread"
    READING = "reading"
    FINISHED = "finished"


class HighlightType(str, Enum):
    IDEA = "idea"
    DEFINITION = "definition"
    QUOTE = "quote"


class TextExtractionStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    FAILED = "failed"
    SKIPPED = "skipped"


class SearchResultType(str, Enum):
    DOCUMENT = "document"
    HIGHLIGHT = "highlight"
    NOTE = "note"


@dataclass
class ParsedChapter:
    id: str
    title: str
    href: str
    order: int


@dataclass
class ParsedMetadata:
    title: Optional[str] = None
    author: str = "Unknown"
    description: str = ""
    language: str = "en"
    publisher: str = ""
    date: str = field(default_factory=lambda: utcnow().isoformat())
    cover_href: Optional[str] = None
    native_page_count: Optional[int] = None


@dataclass
class ParsedContent:
    """
    Canonical output of every parsing engine: metadata, flattened text and an
    optional chapter list / table of contents. A degraded parse still returns
    one of these, with `extraction_status` telling callers what happened.
    """

    metadata: ParsedMetadata
    text: str
    chapters: List[ParsedChapter] = field(default_factory=list)
    toc: List[ParsedChapter] = field(default_factory=list)
    html: Optional[str] = None
    extraction_status: TextExtractionStatus = TextExtractionStatus.OK
    opf_path: Optional[str] = None

    @property
    def countable_text(self) -> str:
        # Placeholder text from a degraded parse must never feed word counts.
        if self.extraction_status == TextExtractionStatus.OK:
            return self.text
        return ""


@dataclass
class DocumentMetrics:
    word_count: int
    page_count: int
    estimated_reading_time: int


@dataclass
class DocumentRecord:
    id: str
    title: str
    file_path: str
    format: DocumentFormat
    status: DocumentStatus = DocumentStatus.UNREAD
    page_count: int = 1
    word_count: int = 0
    estimated_reading_time: int = 0
    is_favorite: bool = False
    cover_image_path: Optional[str] = None
    extracted_text: Optional[str] = None
    text_extraction_status: TextExtractionStatus = TextExtractionStatus.OK
    author: Optional[str] = None
    language: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    last_opened_at: Optional[datetime] = None


@dataclass
class TagRecord:
    id: str
    name: str
    color: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class CollectionRecord:
    id: str
    name: str
    color: Optional[str] = None
    icon: Optional[str] = None
    parent_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class ReadingPositionRecord:
    document_id: str
    position: int = 0
    progress: float = 0.0
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class HighlightRecord:
    id: str
    document_id: str
    type: HighlightType
    text: str
    start_position: int
    end_position: int
    color: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class NoteRecord:
    id: str
    document_id: str
    text: str
    position: int
    highlight_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class ReadingSessionRecord:
    id: str
    document_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    pages_read: int = 0
    words_read: int = 0
    duration_seconds: int = 0

    @property
    def is_closed(self) -> bool:
        return self.end_time is not None


@dataclass
class MostReadDocument:
    id: str
    title: str
    time_spent: int


@dataclass
class ReadingStats:
    total_reading_time: int
    total_pages_read: int
    total_words_read: int
    average_reading_speed: int
    reading_streak: int
    sessions_today: int
    sessions_this_week: int
    sessions_this_month: int
    most_read_document: Optional[MostReadDocument] = None


@dataclass
class DailyReadingTime:
    date: date
    total_seconds: int


@dataclass
class SearchResult:
    type: SearchResultType
    id: str
    document_id: str
    document_title: str
    text: str
    snippet: str
    position: Optional[int] = None
