"""
ReadUs core package.

The `library` subpackage holds the document library: format parsers
(PDF, EPUB, DOCX, plain text), the SQL-backed store for documents and
annotations, reading statistics, search, covers and export.
"""
