from __future__ import annotations

import logging
from dataclasses import fields
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    case,
    create_engine,
    delete,
    event,
    func,
    or_,
    select,
    update,
)
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .errors import StoreUnavailableError
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
    TagRecord,
    TextExtractionStatus,
    utcnow,
)

logger = logging.getLogger(__name__)

Base = declarative_base()


def _enum(enum_cls):
    # Persist the enum value ("unread"), not the member name ("UNREAD").
    return Enum(enum_cls, values_callable=lambda members: [m.value for m in members], native_enum=False)


class DocumentModel(Base):
    __tablename__ = "documents"
    id = Column(String, primary_key=True)
    title = Column(String, nullable=False, index=True)
    file_path = Column(String, nullable=False, unique=True)
    format = Column(_enum(DocumentFormat), nullable=False)
    status = Column(_enum(DocumentStatus), nullable=False, default=DocumentStatus.UNREAD, index=True)
    page_count = Column(Integer, default=0)
    word_count = Column(Integer, default=0)
    estimated_reading_time = Column(Integer, default=0)
    is_favorite = Column(Boolean, default=False)
    cover_image_path = Column(String)
    extracted_text = Column(Text)
    text_extraction_status = Column(_enum(TextExtractionStatus), default=TextExtractionStatus.OK)
    author = Column(String)
    language = Column(String)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)
    last_opened_at = Column(DateTime)


class TagModel(Base):
    __tablename__ = "tags"
    id = Column(String, primary_key=True)
    name = Column(String, nullable=False, unique=True)
    color = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False)


class DocumentTagModel(Base):
    __tablename__ = "document_tags"
    document_id = Column(String, ForeignKey("documents.id", ondelete="CASCADE"), primary_key=True, index=True)
    tag_id = Column(String, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True)


class CollectionModel(Base):
    __tablename__ = "collections"
    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    color = Column(String)
    icon = Column(String)
    parent_id = Column(String, ForeignKey("collections.id", ondelete="SET NULL"), index=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


class CollectionDocumentModel(Base):
    __tablename__ = "collection_documents"
    collection_id = Column(String, ForeignKey("collections.id", ondelete="CASCADE"), primary_key=True, index=True)
    document_id = Column(String, ForeignKey("documents.id", ondelete="CASCADE"), primary_key=True, index=True)
    added_at = Column(DateTime, nullable=False)


class ReadingPositionModel(Base):
    __tablename__ = "reading_positions"
    document_id = Column(String, ForeignKey("documents.id", ondelete="CASCADE"), primary_key=True)
    position = Column(Integer, nullable=False, default=0)
    progress = Column(Float, nullable=False, default=0.0)
    updated_at = Column(DateTime, nullable=False)


class HighlightModel(Base):
    __tablename__ = "highlights"
    id = Column(String, primary_key=True)
    document_id = Column(String, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(_enum(HighlightType), nullable=False)
    text = Column(Text, nullable=False)
    start_position = Column(Integer, nullable=False)
    end_position = Column(Integer, nullable=False)
    color = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False)


class NoteModel(Base):
    __tablename__ = "notes"
    id = Column(String, primary_key=True)
    document_id = Column(String, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    highlight_id = Column(String, ForeignKey("highlights.id", ondelete="CASCADE"), index=True)
    text = Column(Text, nullable=False)
    position = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


class ReadingSessionModel(Base):
    __tablename__ = "reading_sessions"
    id = Column(String, primary_key=True)
    document_id = Column(String, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime)
    pages_read = Column(Integer, nullable=False, default=0)
    words_read = Column(Integer, nullable=False, default=0)
    duration_seconds = Column(Integer, nullable=False, default=0)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _ensure_sqlite_directory(database_url: str) -> None:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def _to_record(model, record_cls: Type):
    return record_cls(**{f.name: getattr(model, f.name) for f in fields(record_cls)})


def _to_model(record, model_cls: Type):
    return model_cls(**{f.name: getattr(record, f.name) for f in fields(record)})


_DOCUMENT_ENUMS = {
    "format": DocumentFormat,
    "status": DocumentStatus,
    "text_extraction_status": TextExtractionStatus,
}


def _contains(column, query: str):
    return func.lower(column).contains(query.lower(), autoescape=True)


class LibraryRepository:
    """
    SQL-backed store for the whole library using SQLAlchemy. Works with
    SQLite (foreign keys switched on per connection) or Postgres URLs.

    Every call opens its own short session, so one repository instance can be
    shared by the threads of a single process. Deleting a document or a
    highlight relies on ON DELETE CASCADE and runs in one transaction.
    """

    def __init__(self, database_url: str):
        try:
            _ensure_sqlite_directory(database_url)
            self.engine = create_engine(database_url, future=True)
            if self.engine.dialect.name == "sqlite":
                event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
            Base.metadata.create_all(self.engine)
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(f"Cannot initialise store at {database_url}: {exc}") from exc
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False, future=True)

    def _session(self) -> Session:
        if self.engine is None:
            raise StoreUnavailableError("Repository has been closed")
        return self.SessionLocal()

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None

    def _update_fields(self, model_cls, key_column, key: str, allowed: set, values: Dict[str, Any]) -> None:
        if not values:
            return
        unknown = set(values) - allowed
        if unknown:
            raise ValueError(f"Unknown fields for {model_cls.__tablename__}: {sorted(unknown)}")
        with self._session() as session:
            session.execute(update(model_cls).where(key_column == key).values(**values))
            session.commit()

    # region Document operations
    def insert_document(self, document: DocumentRecord) -> None:
        with self._session() as session:
            session.add(_to_model(document, DocumentModel))
            session.commit()

    def save_document(self, document: DocumentRecord) -> None:
        with self._session() as session:
            session.merge(_to_model(document, DocumentModel))
            session.commit()

    def get_document(self, document_id: str) -> Optional[DocumentRecord]:
        with self._session() as session:
            model = session.get(DocumentModel, document_id)
            return _to_record(model, DocumentRecord) if model else None

    def get_document_by_path(self, file_path: str) -> Optional[DocumentRecord]:
        with self._session() as session:
            model = session.execute(
                select(DocumentModel).where(DocumentModel.file_path == file_path)
            ).scalar_one_or_none()
            return _to_record(model, DocumentRecord) if model else None

    def list_documents(self) -> List[DocumentRecord]:
        with self._session() as session:
            stmt = select(DocumentModel).order_by(
                DocumentModel.last_opened_at.desc().nulls_last(),
                DocumentModel.created_at.desc(),
            )
            return [_to_record(m, DocumentRecord) for m in session.execute(stmt).scalars().all()]

    def list_documents_by_status(self, status: DocumentStatus) -> List[DocumentRecord]:
        with self._session() as session:
            stmt = (
                select(DocumentModel)
                .where(DocumentModel.status == DocumentStatus(status))
                .order_by(DocumentModel.created_at.desc())
            )
            return [_to_record(m, DocumentRecord) for m in session.execute(stmt).scalars().all()]

    def update_document(self, document_id: str, **values: Any) -> None:
        """
        Partial update: only the given fields are written. An empty call is a
        no-op; otherwise `updated_at` is refreshed unless supplied.
        """
        if not values:
            return
        for name, enum_cls in _DOCUMENT_ENUMS.items():
            if values.get(name) is not None:
                values[name] = enum_cls(values[name])
        values.setdefault("updated_at", utcnow())
        allowed = {f.name for f in fields(DocumentRecord)} - {"id", "created_at"}
        self._update_fields(DocumentModel, DocumentModel.id, document_id, allowed, values)

    def mark_document_opened(self, document_id: str, opened_at: Optional[datetime] = None) -> None:
        opened_at = opened_at or utcnow()
        self.update_document(document_id, last_opened_at=opened_at, updated_at=opened_at)

    def delete_document(self, document_id: str) -> bool:
        with self._session() as session, session.begin():
            result = session.execute(delete(DocumentModel).where(DocumentModel.id == document_id))
            return result.rowcount > 0

    # endregion

    # region Tag operations
    def insert_tag(self, tag: TagRecord) -> None:
        with self._session() as session:
            session.add(_to_model(tag, TagModel))
            session.commit()

    def get_tag(self, tag_id: str) -> Optional[TagRecord]:
        with self._session() as session:
            model = session.get(TagModel, tag_id)
            return _to_record(model, TagRecord) if model else None

    def list_tags(self) -> List[TagRecord]:
        with self._session() as session:
            models = session.execute(select(TagModel).order_by(TagModel.name)).scalars().all()
            return [_to_record(m, TagRecord) for m in models]

    def delete_tag(self, tag_id: str) -> bool:
        with self._session() as session, session.begin():
            return session.execute(delete(TagModel).where(TagModel.id == tag_id)).rowcount > 0

    def add_tag_to_document(self, document_id: str, tag_id: str) -> None:
        with self._session() as session:
            session.merge(DocumentTagModel(document_id=document_id, tag_id=tag_id))
            session.commit()

    def remove_tag_from_document(self, document_id: str, tag_id: str) -> None:
        with self._session() as session:
            session.execute(
                delete(DocumentTagModel).where(
                    DocumentTagModel.document_id == document_id,
                    DocumentTagModel.tag_id == tag_id,
                )
            )
            session.commit()

    def list_tags_for_document(self, document_id: str) -> List[TagRecord]:
        with self._session() as session:
            stmt = (
                select(TagModel)
                .join(DocumentTagModel, DocumentTagModel.tag_id == TagModel.id)
                .where(DocumentTagModel.document_id == document_id)
                .order_by(TagModel.name)
            )
            return [_to_record(m, TagRecord) for m in session.execute(stmt).scalars().all()]

    def list_documents_for_tag(self, tag_id: str) -> List[DocumentRecord]:
        with self._session() as session:
            stmt = (
                select(DocumentModel)
                .join(DocumentTagModel, DocumentTagModel.document_id == DocumentModel.id)
                .where(DocumentTagModel.tag_id == tag_id)
                .order_by(DocumentModel.title)
            )
            return [_to_record(m, DocumentRecord) for m in session.execute(stmt).scalars().all()]

    # endregion

    # region Collection operations
    def insert_collection(self, collection: CollectionRecord) -> None:
        with self._session() as session:
            session.add(_to_model(collection, CollectionModel))
            session.commit()

    def get_collection(self, collection_id: str) -> Optional[CollectionRecord]:
        with self._session() as session:
            model = session.get(CollectionModel, collection_id)
            return _to_record(model, CollectionRecord) if model else None

    def list_collections(self) -> List[CollectionRecord]:
        with self._session() as session:
            models = session.execute(select(CollectionModel).order_by(CollectionModel.name)).scalars().all()
            return [_to_record(m, CollectionRecord) for m in models]

    def list_child_collections(self, parent_id: Optional[str]) -> List[CollectionRecord]:
        with self._session() as session:
            if parent_id is None:
                condition = CollectionModel.parent_id.is_(None)
            else:
                condition = CollectionModel.parent_id == parent_id
            stmt = select(CollectionModel).where(condition).order_by(CollectionModel.name)
            return [_to_record(m, CollectionRecord) for m in session.execute(stmt).scalars().all()]

    def update_collection(self, collection_id: str, **values: Any) -> None:
        if not values:
            return
        values.setdefault("updated_at", utcnow())
        allowed = {"name", "color", "icon", "parent_id", "updated_at"}
        self._update_fields(CollectionModel, CollectionModel.id, collection_id, allowed, values)

    def delete_collection(self, collection_id: str) -> bool:
        with self._session() as session, session.begin():
            result = session.execute(delete(CollectionModel).where(CollectionModel.id == collection_id))
            return result.rowcount > 0

    def add_document_to_collection(self, collection_id: str, document_id: str) -> None:
        with self._session() as session:
            existing = session.get(CollectionDocumentModel, (collection_id, document_id))
            if existing is None:
                session.add(
                    CollectionDocumentModel(collection_id=collection_id, document_id=document_id, added_at=utcnow())
                )
                session.commit()

    def remove_document_from_collection(self, collection_id: str, document_id: str) -> None:
        with self._session() as session:
            session.execute(
                delete(CollectionDocumentModel).where(
                    CollectionDocumentModel.collection_id == collection_id,
                    CollectionDocumentModel.document_id == document_id,
                )
            )
            session.commit()

    def list_collection_documents(self, collection_id: str) -> List[DocumentRecord]:
        with self._session() as session:
            stmt = (
                select(DocumentModel)
                .join(CollectionDocumentModel, CollectionDocumentModel.document_id == DocumentModel.id)
                .where(CollectionDocumentModel.collection_id == collection_id)
                .order_by(CollectionDocumentModel.added_at.desc())
            )
            return [_to_record(m, DocumentRecord) for m in session.execute(stmt).scalars().all()]

    def list_document_collections(self, document_id: str) -> List[CollectionRecord]:
        with self._session() as session:
            stmt = (
                select(CollectionModel)
                .join(CollectionDocumentModel, CollectionDocumentModel.collection_id == CollectionModel.id)
                .where(CollectionDocumentModel.document_id == document_id)
                .order_by(CollectionModel.name)
            )
            return [_to_record(m, CollectionRecord) for m in session.execute(stmt).scalars().all()]

    # endregion

    # region Reading position operations
    def upsert_reading_position(self, position: ReadingPositionRecord) -> ReadingPositionRecord:
        """Insert or overwrite the single position row of a document."""
        stored = ReadingPositionRecord(
            document_id=position.document_id,
            position=max(0, int(position.position)),
            progress=min(100.0, max(0.0, float(position.progress))),
            updated_at=position.updated_at or utcnow(),
        )
        with self._session() as session:
            session.merge(_to_model(stored, ReadingPositionModel))
            session.commit()
        return stored

    def get_reading_position(self, document_id: str) -> Optional[ReadingPositionRecord]:
        with self._session() as session:
            model = session.get(ReadingPositionModel, document_id)
            return _to_record(model, ReadingPositionRecord) if model else None

    # endregion

    # region Highlight operations
    def insert_highlight(self, highlight: HighlightRecord) -> None:
        with self._session() as session:
            session.add(_to_model(highlight, HighlightModel))
            session.commit()

    def save_highlight(self, highlight: HighlightRecord) -> None:
        with self._session() as session:
            session.merge(_to_model(highlight, HighlightModel))
            session.commit()

    def get_highlight(self, highlight_id: str) -> Optional[HighlightRecord]:
        with self._session() as session:
            model = session.get(HighlightModel, highlight_id)
            return _to_record(model, HighlightRecord) if model else None

    def list_highlights_for_document(self, document_id: str) -> List[HighlightRecord]:
        with self._session() as session:
            stmt = (
                select(HighlightModel)
                .where(HighlightModel.document_id == document_id)
                .order_by(HighlightModel.start_position)
            )
            return [_to_record(m, HighlightRecord) for m in session.execute(stmt).scalars().all()]

    def list_highlights(self) -> List[HighlightRecord]:
        with self._session() as session:
            stmt = select(HighlightModel).order_by(HighlightModel.created_at.desc())
            return [_to_record(m, HighlightRecord) for m in session.execute(stmt).scalars().all()]

    def update_highlight(self, highlight_id: str, **values: Any) -> None:
        if values.get("type") is not None:
            values["type"] = HighlightType(values["type"])
        allowed = {"type", "text", "start_position", "end_position", "color"}
        self._update_fields(HighlightModel, HighlightModel.id, highlight_id, allowed, values)

    def delete_highlight(self, highlight_id: str) -> bool:
        with self._session() as session, session.begin():
            result = session.execute(delete(HighlightModel).where(HighlightModel.id == highlight_id))
            return result.rowcount > 0

    # endregion

    # region Note operations
    def insert_note(self, note: NoteRecord) -> None:
        with self._session() as session:
            session.add(_to_model(note, NoteModel))
            session.commit()

    def save_note(self, note: NoteRecord) -> None:
        with self._session() as session:
            session.merge(_to_model(note, NoteModel))
            session.commit()

    def get_note(self, note_id: str) -> Optional[NoteRecord]:
        with self._session() as session:
            model = session.get(NoteModel, note_id)
            return _to_record(model, NoteRecord) if model else None

    def list_notes_for_document(self, document_id: str) -> List[NoteRecord]:
        with self._session() as session:
            stmt = select(NoteModel).where(NoteModel.document_id == document_id).order_by(NoteModel.position)
            return [_to_record(m, NoteRecord) for m in session.execute(stmt).scalars().all()]

    def list_notes_for_highlight(self, highlight_id: str) -> List[NoteRecord]:
        with self._session() as session:
            stmt = select(NoteModel).where(NoteModel.highlight_id == highlight_id).order_by(NoteModel.created_at)
            return [_to_record(m, NoteRecord) for m in session.execute(stmt).scalars().all()]

    def list_notes(self) -> List[NoteRecord]:
        with self._session() as session:
            stmt = select(NoteModel).order_by(NoteModel.updated_at.desc())
            return [_to_record(m, NoteRecord) for m in session.execute(stmt).scalars().all()]

    def update_note_text(self, note_id: str, text: str) -> None:
        self._update_fields(NoteModel, NoteModel.id, note_id, {"text", "updated_at"}, {"text": text, "updated_at": utcnow()})

    def delete_note(self, note_id: str) -> bool:
        with self._session() as session, session.begin():
            return session.execute(delete(NoteModel).where(NoteModel.id == note_id)).rowcount > 0

    # endregion

    # region Reading session operations
    def insert_session(self, reading_session: ReadingSessionRecord) -> None:
        with self._session() as session:
            session.add(_to_model(reading_session, ReadingSessionModel))
            session.commit()

    def get_session(self, session_id: str) -> Optional[ReadingSessionRecord]:
        with self._session() as session:
            model = session.get(ReadingSessionModel, session_id)
            return _to_record(model, ReadingSessionRecord) if model else None

    def close_session(
        self,
        session_id: str,
        end_time: datetime,
        pages_read: int,
        words_read: int,
        duration_seconds: int,
    ) -> bool:
        with self._session() as session:
            result = session.execute(
                update(ReadingSessionModel)
                .where(ReadingSessionModel.id == session_id)
                .values(
                    end_time=end_time,
                    pages_read=pages_read,
                    words_read=words_read,
                    duration_seconds=duration_seconds,
                )
            )
            session.commit()
            return result.rowcount > 0

    def list_closed_sessions(self, since: Optional[datetime] = None) -> List[ReadingSessionRecord]:
        with self._session() as session:
            stmt = select(ReadingSessionModel).where(ReadingSessionModel.end_time.is_not(None))
            if since is not None:
                stmt = stmt.where(ReadingSessionModel.start_time >= since)
            stmt = stmt.order_by(ReadingSessionModel.start_time.desc())
            return [_to_record(m, ReadingSessionRecord) for m in session.execute(stmt).scalars().all()]

    def list_sessions_for_document(self, document_id: str) -> List[ReadingSessionRecord]:
        with self._session() as session:
            stmt = (
                select(ReadingSessionModel)
                .where(ReadingSessionModel.document_id == document_id)
                .order_by(ReadingSessionModel.start_time.desc())
            )
            return [_to_record(m, ReadingSessionRecord) for m in session.execute(stmt).scalars().all()]

    # endregion

    # region Search queries
    def search_documents(self, query: str) -> List[DocumentRecord]:
        """Title or path containment; title matches sort before path-only matches."""
        title_match = _contains(DocumentModel.title, query)
        with self._session() as session:
            stmt = (
                select(DocumentModel)
                .where(or_(title_match, _contains(DocumentModel.file_path, query)))
                .order_by(case((title_match, 1), else_=2), DocumentModel.title)
            )
            return [_to_record(m, DocumentRecord) for m in session.execute(stmt).scalars().all()]

    def search_highlights(self, query: str) -> List[Tuple[HighlightRecord, Optional[str]]]:
        with self._session() as session:
            stmt = (
                select(HighlightModel, DocumentModel.title)
                .outerjoin(DocumentModel, DocumentModel.id == HighlightModel.document_id)
                .where(_contains(HighlightModel.text, query))
                .order_by(HighlightModel.created_at.desc())
            )
            return [(_to_record(m, HighlightRecord), title) for m, title in session.execute(stmt).all()]

    def search_notes(self, query: str) -> List[Tuple[NoteRecord, Optional[str]]]:
        with self._session() as session:
            stmt = (
                select(NoteModel, DocumentModel.title)
                .outerjoin(DocumentModel, DocumentModel.id == NoteModel.document_id)
                .where(_contains(NoteModel.text, query))
                .order_by(NoteModel.updated_at.desc())
            )
            return [(_to_record(m, NoteRecord), title) for m, title in session.execute(stmt).all()]

    # endregion

    # region Bulk restore
    def merge_records(
        self,
        documents: List[DocumentRecord],
        highlights: List[HighlightRecord],
        notes: List[NoteRecord],
    ) -> None:
        """Upsert every row in one transaction; any failure rolls the whole batch back."""
        with self._session() as session, session.begin():
            for document in documents:
                session.merge(_to_model(document, DocumentModel))
            session.flush()
            for highlight in highlights:
                session.merge(_to_model(highlight, HighlightModel))
            session.flush()
            for note in notes:
                session.merge(_to_model(note, NoteModel))

    # endregion
