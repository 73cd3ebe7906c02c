"""Image and session repository: create records, advance image status, read a session's images."""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator

from sqlalchemy import select
from sqlalchemy.orm import Session

from seotagger.ai.schema import AnalysisResult
from seotagger.models.entities import (
    ALLOWED_TRANSITIONS,
    AnalysisSession,
    Image,
    ImageStatus,
    TERMINAL_STATUSES,
)


class InvalidTransitionError(ValueError):
    """Requested status change is not a forward transition of the image lifecycle."""


class ImageRepository:
    """
    Database access for sessions and images.

    update_image_status enforces the one-directional lifecycle
    pending -> processing -> completed | error; terminal states are never left.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session_scope(self, write: bool = False) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            if write:
                session.commit()
        finally:
            session.close()

    def create_session(self, name: str | None = None, session_id: str | None = None) -> AnalysisSession:
        """Insert a new analysis session. Default name is 'Session <local timestamp>'."""
        if not name or not name.strip():
            name = f"Session {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
        record = AnalysisSession(name=name.strip())
        if session_id:
            record.id = session_id
        with self._session_scope(write=True) as session:
            session.add(record)
        return record

    def get_session(self, session_id: str) -> AnalysisSession | None:
        with self._session_scope() as session:
            return session.get(AnalysisSession, session_id)

    def create_image(self, record: Image) -> Image:
        """Persist a new image record. Status is forced to pending."""
        record.status = ImageStatus.pending
        with self._session_scope(write=True) as session:
            session.add(record)
        return record

    def get_image(self, image_id: str) -> Image | None:
        with self._session_scope() as session:
            return session.get(Image, image_id)

    def get_images(self, session_id: str) -> list[Image]:
        """Return the session's images in creation (submission) order."""
        with self._session_scope() as session:
            rows = session.execute(
                select(Image).where(Image.session_id == session_id).order_by(Image.created_at)
            ).scalars()
            return list(rows)

    def update_image_status(
        self,
        image_id: str,
        status: ImageStatus,
        *,
        alt_text: str | None = None,
        title: str | None = None,
        keywords: list[str] | None = None,
        error_message: str | None = None,
    ) -> Image:
        """
        Move an image to status and set the given fields.
        Raises LookupError for an unknown id and InvalidTransitionError for a backward move.
        """
        with self._session_scope(write=True) as session:
            image = session.get(Image, image_id)
            if image is None:
                raise LookupError(f"Image not found: {image_id}")
            current = ImageStatus(image.status)
            if current in TERMINAL_STATUSES:
                raise InvalidTransitionError(f"Image {image_id} is already {current.value}")
            if status not in ALLOWED_TRANSITIONS[current]:
                raise InvalidTransitionError(
                    f"Image {image_id}: cannot move from {current.value} to {status.value}"
                )
            image.status = status
            if alt_text is not None:
                image.alt_text = alt_text
            if title is not None:
                image.title = title
            if keywords is not None:
                image.keywords = list(keywords)
            if error_message is not None:
                image.error_message = error_message
            image.updated_at = datetime.now(timezone.utc)
            session.add(image)
            return image

    def mark_processing(self, image_id: str) -> Image:
        return self.update_image_status(image_id, ImageStatus.processing)

    def mark_completed(self, image_id: str, result: AnalysisResult) -> Image:
        return self.update_image_status(
            image_id,
            ImageStatus.completed,
            alt_text=result.alt_text,
            title=result.title,
            keywords=result.keywords,
        )

    def mark_error(self, image_id: str, message: str) -> Image:
        return self.update_image_status(image_id, ImageStatus.error, error_message=message)
