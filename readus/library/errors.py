from __future__ import annotations


class LibraryError(Exception):
    """Base class for every error raised by the library core."""


class CorruptArchiveError(LibraryError):
    """The ZIP container (EPUB/DOCX) could not be opened."""


class EntryNotFoundError(LibraryError):
    def __init__(self, path: str):
        super().__init__(f"Archive entry not found: {path}")
        self.path = path


class ChapterNotFoundError(EntryNotFoundError):
    def __init__(self, href: str):
        LibraryError.__init__(self, f"Chapter file not found: {href}")
        self.path = href


class SourceUnavailableError(LibraryError):
    """The import source could not be read or copied into managed storage."""


class UnknownSessionError(LibraryError):
    def __init__(self, session_id: str):
        super().__init__(f"Reading session not found: {session_id}")
        self.session_id = session_id


class StoreUnavailableError(LibraryError):
    """The repository was used before it was initialised or after it was closed."""


class DocumentNotFoundError(LibraryError):
    def __init__(self, document_id: str):
        super().__init__(f"Document not found: {document_id}")
        self.document_id = document_id
