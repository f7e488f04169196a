from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from urllib.parse import unquote
from xml.etree import ElementTree as ET

from bs4 import BeautifulSoup

from .archive import ArchiveReader
from .engine import ParsingEngine
from .errors import ChapterNotFoundError, EntryNotFoundError
from .models import (
    DocumentFormat,
    ParsedChapter,
    ParsedContent,
    ParsedMetadata,
    TextExtractionStatus,
)

logger = logging.getLogger(__name__)

CONTAINER_PATH = "META-INF/container.xml"
DEFAULT_OPF_PATHS = ("OEBPS/content.opf", "content.opf", "package.opf", "book.opf")
HTML_MEDIA_TYPES = frozenset({"application/xhtml+xml", "text/html"})
NCX_MEDIA_TYPE = "application/x-dtbncx+xml"
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")

EMPTY_TEXT_PLACEHOLDER = "No text content extracted from EPUB."
ERROR_TEXT_PLACEHOLDER = "Error parsing EPUB file. The file may be corrupted or in an unsupported format."


@dataclass
class ManifestItem:
    id: str
    href: str
    media_type: str
    properties: str = ""


def _local_name(tag) -> str:
    # Comments and processing instructions carry a non-string tag.
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _element_text(element: ET.Element) -> str:
    return " ".join("".join(element.itertext()).split())


def _parse_xml(archive: ArchiveReader, path: str) -> Optional[ET.Element]:
    try:
        return ET.fromstring(archive.read_bytes(path))
    except (EntryNotFoundError, ET.ParseError):
        return None


def _split_fragment(href: str) -> Tuple[str, str]:
    path, _, fragment = href.partition("#")
    return unquote(path), fragment


def resolve_href(base_dir: str, href: str) -> str:
    """Resolve an OPF/NCX relative href to an archive entry path (fragment kept)."""
    path, fragment = _split_fragment(href)
    if path.startswith("/"):
        resolved = path.lstrip("/")
    elif base_dir:
        resolved = posixpath.normpath(posixpath.join(base_dir, path))
    else:
        resolved = posixpath.normpath(path) if path else path
    return f"{resolved}#{fragment}" if fragment else resolved


def find_opf_path(archive: ArchiveReader) -> Optional[str]:
    container = _parse_xml(archive, CONTAINER_PATH)
    if container is not None:
        for element in container.iter():
            if _local_name(element.tag) == "rootfile":
                full_path = element.get("full-path")
                if full_path and archive.has(full_path):
                    return full_path
    for candidate in DEFAULT_OPF_PATHS:
        if archive.has(candidate):
            return candidate
    return None


def html_to_text(html: str) -> str:
    """Visible text of an (X)HTML document: scripts/styles dropped, whitespace collapsed."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    root = soup.body or soup
    return " ".join(root.get_text(separator=" ").split())


class EpubParsingEngine(ParsingEngine):
    """
    EPUB (OCF/OPF) parser. Reads the package document for metadata and the
    manifest, builds the chapter list from (X)HTML manifest items, prefers
    NCX / EPUB 3 nav labels for the table of contents, and flattens all
    chapter bodies into canonical text.
    """

    format = DocumentFormat.EPUB
    placeholder_text = ERROR_TEXT_PLACEHOLDER

    def default_metadata(self) -> ParsedMetadata:
        return ParsedMetadata(title="Unknown EPUB", author="Unknown", language="en")

    def parse(self, path: Path) -> ParsedContent:
        try:
            with ArchiveReader.from_path(path) as archive:
                return self._parse_archive(archive)
        except Exception as exc:  # noqa: BLE001
            return self.degraded(path, exc)

    def _parse_archive(self, archive: ArchiveReader) -> ParsedContent:
        metadata = self.default_metadata()
        opf_path = find_opf_path(archive)
        opf = _parse_xml(archive, opf_path) if opf_path else None
        if opf is None:
            logger.info("No package document found in EPUB; using defaults")
            return ParsedContent(
                metadata=metadata,
                text=EMPTY_TEXT_PLACEHOLDER,
                extraction_status=TextExtractionStatus.EMPTY,
                opf_path=opf_path,
            )

        opf_dir = posixpath.dirname(opf_path)
        manifest = self._parse_manifest(opf)
        self._apply_metadata(opf, metadata)
        metadata.cover_href = self._find_cover_href(opf, manifest, opf_dir)

        chapters = self._build_chapters(manifest, opf_dir)
        toc = self._parse_toc(archive, manifest, opf_dir)
        if toc:
            labels: Dict[str, str] = {}
            for entry in toc:
                labels.setdefault(_split_fragment(entry.href)[0], entry.title)
            for chapter in chapters:
                chapter.title = labels.get(chapter.href, chapter.title)

        text_parts: List[str] = []
        for chapter in chapters:
            try:
                chapter_text = html_to_text(archive.read_text(chapter.href))
            except EntryNotFoundError:
                logger.debug("Chapter %s listed in manifest but missing from archive", chapter.href)
                continue
            if chapter_text:
                text_parts.append(chapter_text)
        text = "\n\n".join(text_parts)

        status = TextExtractionStatus.OK if text else TextExtractionStatus.EMPTY
        return ParsedContent(
            metadata=metadata,
            text=text or EMPTY_TEXT_PLACEHOLDER,
            chapters=chapters,
            toc=toc or list(chapters),
            extraction_status=status,
            opf_path=opf_path,
        )

    def _parse_manifest(self, opf: ET.Element) -> List[ManifestItem]:
        items: List[ManifestItem] = []
        for element in opf.iter():
            if _local_name(element.tag) != "item":
                continue
            item_id = element.get("id", "")
            href = element.get("href", "")
            if not item_id or not href:
                continue
            items.append(
                ManifestItem(
                    id=item_id,
                    href=href,
                    media_type=element.get("media-type", ""),
                    properties=element.get("properties", ""),
                )
            )
        return items

    def _apply_metadata(self, opf: ET.Element, metadata: ParsedMetadata) -> None:
        fields = {
            "title": "title",
            "creator": "author",
            "description": "description",
            "language": "language",
            "publisher": "publisher",
            "date": "date",
        }
        seen = set()
        for element in opf.iter():
            name = _local_name(element.tag)
            attr = fields.get(name)
            if attr is None or attr in seen:
                continue
            # Dublin Core elements only; a bare <title> is tolerated for packages without namespaces.
            if not element.tag.startswith("{http://purl.org/dc/elements/1.1/}") and name != "title":
                continue
            value = _element_text(element)
            if value:
                setattr(metadata, attr, value)
                seen.add(attr)

    def _find_cover_href(self, opf: ET.Element, manifest: List[ManifestItem], opf_dir: str) -> Optional[str]:
        cover_id = None
        for element in opf.iter():
            if _local_name(element.tag) == "meta" and element.get("name") == "cover":
                cover_id = element.get("content")
                break
        for item in manifest:
            if (cover_id and item.id == cover_id) or "cover-image" in item.properties.split():
                return resolve_href(opf_dir, item.href)
        return None

    def _build_chapters(self, manifest: List[ManifestItem], opf_dir: str) -> List[ParsedChapter]:
        chapters: List[ParsedChapter] = []
        for item in manifest:
            if item.media_type not in HTML_MEDIA_TYPES or "nav" in item.properties.split():
                continue
            order = len(chapters) + 1
            chapters.append(
                ParsedChapter(
                    id=item.id,
                    title=f"Chapter {order}",
                    href=_split_fragment(resolve_href(opf_dir, item.href))[0],
                    order=order,
                )
            )
        return chapters

    def _parse_toc(self, archive: ArchiveReader, manifest: List[ManifestItem], opf_dir: str) -> List[ParsedChapter]:
        ncx_path = next(
            (resolve_href(opf_dir, item.href) for item in manifest if item.media_type == NCX_MEDIA_TYPE),
            None,
        )
        if ncx_path is None:
            ncx_path = next((name for name in archive.list() if name.lower().endswith(".ncx")), None)
        if ncx_path:
            try:
                toc = self._parse_ncx(archive, ncx_path)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Ignoring unreadable NCX %s: %s", ncx_path, exc)
                toc = []
            if toc:
                return toc

        nav_item = next((item for item in manifest if "nav" in item.properties.split()), None)
        if nav_item is not None:
            try:
                return self._parse_nav(archive, resolve_href(opf_dir, nav_item.href))
            except Exception as exc:  # noqa: BLE001
                logger.warning("Ignoring unreadable nav document %s: %s", nav_item.href, exc)
        return []

    def _parse_ncx(self, archive: ArchiveReader, ncx_path: str) -> List[ParsedChapter]:
        root = _parse_xml(archive, ncx_path)
        if root is None:
            return []
        ncx_dir = posixpath.dirname(ncx_path)
        entries: List[ParsedChapter] = []
        for nav_point in root.iter():
            if _local_name(nav_point.tag) != "navPoint":
                continue
            label = None
            src = None
            for child in nav_point:
                name = _local_name(child.tag)
                if name == "navLabel" and label is None:
                    label = _element_text(child)
                elif name == "content" and src is None:
                    src = child.get("src")
            if not label or not src:
                continue
            entries.append(
                ParsedChapter(
                    id=nav_point.get("id") or f"navpoint-{len(entries) + 1}",
                    title=label,
                    href=resolve_href(ncx_dir, src),
                    order=len(entries) + 1,
                )
            )
        return entries

    def _parse_nav(self, archive: ArchiveReader, nav_path: str) -> List[ParsedChapter]:
        soup = BeautifulSoup(archive.read_text(_split_fragment(nav_path)[0]), "html.parser")
        navs = soup.find_all("nav")
        toc_nav = next((nav for nav in navs if "toc" in (nav.get("epub:type") or "").split()), None)
        toc_nav = toc_nav or (navs[0] if navs else None)
        if toc_nav is None:
            return []
        nav_dir = posixpath.dirname(nav_path)
        entries: List[ParsedChapter] = []
        for anchor in toc_nav.find_all("a", href=True):
            label = " ".join(anchor.get_text(separator=" ").split())
            if not label:
                continue
            entries.append(
                ParsedChapter(
                    id=anchor.get("id") or f"nav-{len(entries) + 1}",
                    title=label,
                    href=resolve_href(nav_dir, anchor["href"]),
                    order=len(entries) + 1,
                )
            )
        return entries


def _chapter_candidates(opf_dir: str, href: str) -> List[str]:
    path, _ = _split_fragment(href)
    if path.startswith("/"):
        primary = path.lstrip("/")
    else:
        primary = posixpath.join(opf_dir, path) if opf_dir else path
    candidates = [primary, path, path.lstrip("/")]
    stripped = path
    while stripped.startswith("../") or stripped.startswith("./"):
        stripped = stripped[3:] if stripped.startswith("../") else stripped[2:]
        candidates.append(stripped)
        if opf_dir:
            candidates.append(posixpath.join(opf_dir, stripped))
    if opf_dir:
        candidates.append(posixpath.normpath(posixpath.join(opf_dir, path)))

    unique: List[str] = []
    for candidate in candidates:
        if candidate and candidate not in unique:
            unique.append(candidate)
    return unique


def get_epub_chapter_content(path: Path, href: str) -> str:
    """
    Return the raw (X)HTML of one chapter. Unlike `parse`, this raises:
    `CorruptArchiveError` for unreadable files and `ChapterNotFoundError`
    when no normalised form of `href` exists in the archive.
    """
    with ArchiveReader.from_path(path) as archive:
        opf_path = find_opf_path(archive)
        opf_dir = posixpath.dirname(opf_path) if opf_path else ""
        for candidate in _chapter_candidates(opf_dir, href):
            if archive.has(candidate):
                return archive.read_text(candidate)
    raise ChapterNotFoundError(href)


def extract_cover_image(path: Path) -> Optional[bytes]:
    """Cover image bytes from the OPF cover declaration, else the first image entry."""
    with ArchiveReader.from_path(path) as archive:
        cover_href = None
        opf_path = find_opf_path(archive)
        opf = _parse_xml(archive, opf_path) if opf_path else None
        if opf is not None:
            engine = EpubParsingEngine()
            cover_href = engine._find_cover_href(opf, engine._parse_manifest(opf), posixpath.dirname(opf_path))
        if cover_href and archive.has(cover_href):
            return archive.read_bytes(cover_href)
        for name in archive.list():
            if name.lower().endswith(IMAGE_EXTENSIONS):
                return archive.read_bytes(name)
    return None
