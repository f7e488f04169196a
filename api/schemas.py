"""Request bodies for the JSON endpoints. Responses are plain dicts or dataclasses."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from readus.library import DocumentStatus, HighlightType


class DocumentUpdate(BaseModel):
    title: Optional[str] = None
    status: Optional[DocumentStatus] = None
    is_favorite: Optional[bool] = None
    author: Optional[str] = None


class PositionUpdate(BaseModel):
    position: int = Field(ge=0)
    progress: float = 0.0


class HighlightCreate(BaseModel):
    type: HighlightType
    text: str
    start_position: int = Field(ge=0)
    end_position: int = Field(ge=0)
    color: str = "#FFEB3B"


class HighlightUpdate(BaseModel):
    type: Optional[HighlightType] = None
    text: Optional[str] = None
    color: Optional[str] = None


class NoteCreate(BaseModel):
    text: str
    position: int = 0
    highlight_id: Optional[str] = None


class NoteUpdate(BaseModel):
    text: str


class TagCreate(BaseModel):
    name: str
    color: str = "#9E9E9E"


class CollectionCreate(BaseModel):
    name: str
    color: Optional[str] = None
    icon: Optional[str] = None
    parent_id: Optional[str] = None


class CollectionUpdate(BaseModel):
    name: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    parent_id: Optional[str] = None


class SessionStart(BaseModel):
    document_id: str


class SessionEnd(BaseModel):
    pages_read: int = Field(default=0, ge=0)
    words_read: int = Field(default=0, ge=0)
