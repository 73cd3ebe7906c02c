"""Repository layer: database access only. No ORM calls in business logic."""

from seotagger.repository.db import create_db_engine, init_db, make_session_factory
from seotagger.repository.image_repo import ImageRepository, InvalidTransitionError
from seotagger.repository.preset_repo import PresetRepository

__all__ = [
    "ImageRepository",
    "InvalidTransitionError",
    "PresetRepository",
    "create_db_engine",
    "init_db",
    "make_session_factory",
]
