"""SQLModel table/entity definitions: analysis sessions, images and presets."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Column, Index
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# --- Enums (stored as strings in DB) ---


class ImageStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    completed = "completed"
    error = "error"


TERMINAL_STATUSES = frozenset({ImageStatus.completed, ImageStatus.error})

# Allowed forward transitions; nothing re-enters pending.
ALLOWED_TRANSITIONS: dict[ImageStatus, frozenset[ImageStatus]] = {
    ImageStatus.pending: frozenset({ImageStatus.processing, ImageStatus.error}),
    ImageStatus.processing: frozenset({ImageStatus.completed, ImageStatus.error}),
    ImageStatus.completed: frozenset(),
    ImageStatus.error: frozenset(),
}


class ExportFormat(str, Enum):
    csv = "csv"
    json = "json"


# --- Tables (FK order: AnalysisSession -> Image; Preset standalone) ---


class AnalysisSession(SQLModel, table=True):
    __tablename__ = "sessions"

    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str = Field(nullable=False)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Image(SQLModel, table=True):
    __tablename__ = "images"
    __table_args__ = (
        Index("idx_images_session_id", "session_id"),
        Index("idx_images_status", "status"),
    )

    id: str = Field(default_factory=_new_id, primary_key=True)
    session_id: str = Field(foreign_key="sessions.id")
    filename: str = Field(nullable=False)
    original_name: str = Field(nullable=False)
    file_path: str = Field(nullable=False)
    file_size: int = 0
    mime_type: str = "image/jpeg"
    alt_text: str | None = Field(default=None)
    title: str | None = Field(default=None)
    keywords: list[str] | None = Field(default=None, sa_column=Column(JSON))
    status: ImageStatus = Field(default=ImageStatus.pending)
    error_message: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def metadata_dict(self) -> dict[str, Any] | None:
        """alt_text/title/keywords when the image completed with metadata, else None."""
        if self.status != ImageStatus.completed or not self.title or self.keywords is None:
            return None
        return {"alt_text": self.alt_text, "title": self.title, "keywords": list(self.keywords)}


class Preset(SQLModel, table=True):
    __tablename__ = "presets"

    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str = Field(nullable=False, unique=True)
    description: str | None = Field(default=None)
    title_max_length: int = 70
    keywords_min: int = 15
    keywords_max: int = 25
    keyword_rules: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    export_format: ExportFormat = Field(default=ExportFormat.csv)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
