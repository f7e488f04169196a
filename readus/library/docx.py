from __future__ import annotations

import html
from pathlib import Path
from typing import Optional

from .archive import ArchiveReader
from .engine import ParsingEngine
from .errors import EntryNotFoundError
from .models import DocumentFormat, ParsedContent, ParsedMetadata, TextExtractionStatus

MAIN_DOCUMENT_PART = "word/document.xml"
ERROR_TEXT_PLACEHOLDER = "Error parsing DOCX file. The file may be corrupted or in an unsupported format."


class DocxParsingEngine(ParsingEngine):
    """
    DOCX parser backed by Docling's `DocumentConverter` (Word pipeline only).

    The container is checked with `ArchiveReader` first so an obviously broken
    upload degrades without spinning up the converter. The converter is
    created lazily on first use; any failure, including a missing Docling
    install, degrades to the placeholder result.
    """

    format = DocumentFormat.DOCX
    placeholder_text = ERROR_TEXT_PLACEHOLDER

    def __init__(self, converter=None):
        self._converter = converter

    def default_metadata(self) -> ParsedMetadata:
        # Core properties are not surfaced by the conversion path, so metadata is fixed.
        return ParsedMetadata(title=None, author="Unknown", language="en")

    def degraded(self, path: Path, exc: Optional[BaseException] = None) -> ParsedContent:
        content = super().degraded(path, exc)
        content.html = f"<p>{html.escape(ERROR_TEXT_PLACEHOLDER)}</p>"
        return content

    def _get_converter(self):
        if self._converter is None:
            from docling.datamodel.base_models import InputFormat
            from docling.document_converter import DocumentConverter

            self._converter = DocumentConverter(allowed_formats=[InputFormat.DOCX])
        return self._converter

    def parse(self, path: Path) -> ParsedContent:
        try:
            with ArchiveReader.from_path(path) as archive:
                if not archive.has(MAIN_DOCUMENT_PART):
                    raise EntryNotFoundError(MAIN_DOCUMENT_PART)
            result = self._get_converter().convert(Path(path))
            doc = result.document
            text = doc.export_to_text() or ""
            rendered = doc.export_to_html()
        except Exception as exc:  # noqa: BLE001
            return self.degraded(path, exc)

        status = TextExtractionStatus.OK if text.strip() else TextExtractionStatus.EMPTY
        return ParsedContent(
            metadata=self.default_metadata(),
            text=text,
            html=rendered,
            extraction_status=status,
        )
