from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from pypdf import PdfReader

from .models import DocumentFormat, ParsedContent, ParsedMetadata, TextExtractionStatus

logger = logging.getLogger(__name__)


class ParsingEngine:
    """
    Abstract parsing engine. Implementations are stateless and reusable, and
    must never raise out of `parse`: a failed parse degrades to a placeholder
    `ParsedContent` so the caller always gets something it can persist.
    """

    format: DocumentFormat = DocumentFormat.TXT
    placeholder_text: str = "Error parsing file. The file may be corrupted or in an unsupported format."

    def parse(self, path: Path) -> ParsedContent:
        raise NotImplementedError

    def default_metadata(self) -> ParsedMetadata:
        return ParsedMetadata()

    def degraded(self, path: Path, exc: Optional[BaseException] = None) -> ParsedContent:
        if exc is not None:
            logger.warning("Degraded %s parse for %s: %s", self.format.value, path, exc)
        return ParsedContent(
            metadata=self.default_metadata(),
            text=self.placeholder_text,
            extraction_status=TextExtractionStatus.FAILED,
        )


class PlainTextParsingEngine(ParsingEngine):
    format = DocumentFormat.TXT

    def parse(self, path: Path) -> ParsedContent:
        try:
            text = Path(path).read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            return self.degraded(path, exc)
        status = TextExtractionStatus.OK if text.strip() else TextExtractionStatus.EMPTY
        return ParsedContent(metadata=self.default_metadata(), text=text, extraction_status=status)


class PdfParsingEngine(ParsingEngine):
    """
    Text layer extraction with pypdf. Scanned PDFs simply come back empty;
    OCR is not attempted.
    """

    format = DocumentFormat.PDF
    placeholder_text = ""

    def parse(self, path: Path) -> ParsedContent:
        try:
            reader = PdfReader(str(path))
            pages: List[str] = []
            for page in reader.pages:
                page_text = (page.extract_text() or "").strip()
                if page_text:
                    pages.append(page_text)
            metadata = self.default_metadata()
            metadata.native_page_count = len(reader.pages)
            info = reader.metadata
            if info is not None:
                if info.title and info.title.strip():
                    metadata.title = info.title.strip()
                if info.author and info.author.strip():
                    metadata.author = info.author.strip()
        except Exception as exc:  # noqa: BLE001
            return self.degraded(path, exc)

        text = "\n\n".join(pages)
        status = TextExtractionStatus.OK if text.strip() else TextExtractionStatus.EMPTY
        return ParsedContent(metadata=metadata, text=text, extraction_status=status)
