"""Preset repository: read-only access to validation presets."""

from contextlib import contextmanager
from typing import Callable, Iterator

from sqlalchemy import select
from sqlalchemy.orm import Session

from seotagger.models.entities import Preset


class PresetRepository:
    """Presets are configuration owned outside the pipeline; this repository only reads them."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
        finally:
            session.close()

    def get(self, preset_id: str) -> Preset | None:
        with self._session_scope() as session:
            return session.get(Preset, preset_id)

    def list_presets(self) -> list[Preset]:
        """All presets ordered by name."""
        with self._session_scope() as session:
            return list(session.execute(select(Preset).order_by(Preset.name)).scalars())
