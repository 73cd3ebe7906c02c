"""Engine/session factory helpers and schema bootstrap (create tables, seed default presets)."""

from pathlib import Path
from typing import Callable

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from seotagger.models.entities import ExportFormat, Preset

DEFAULT_PRESETS: list[dict] = [
    {
        "id": "adobe-stock",
        "name": "Adobe Stock",
        "description": "Optimized for Adobe Stock submissions",
        "title_max_length": 70,
        "keywords_min": 15,
        "keywords_max": 25,
        "keyword_rules": {"singular_nouns": True, "no_duplicates": True, "relevant_only": True},
        "export_format": ExportFormat.csv,
    },
    {
        "id": "shutterstock",
        "name": "Shutterstock",
        "description": "Optimized for Shutterstock submissions",
        "title_max_length": 70,
        "keywords_min": 15,
        "keywords_max": 25,
        "keyword_rules": {"singular_nouns": True, "no_duplicates": True, "relevant_only": True},
        "export_format": ExportFormat.csv,
    },
    {
        "id": "generic-seo",
        "name": "Generic SEO",
        "description": "General SEO optimization",
        "title_max_length": 60,
        "keywords_min": 10,
        "keywords_max": 20,
        "keyword_rules": {"singular_nouns": False, "no_duplicates": True, "relevant_only": True},
        "export_format": ExportFormat.json,
    },
]


def create_db_engine(database_url: str) -> Engine:
    """
    Create an engine for database_url. SQLite files get their parent directory created and
    cross-thread access enabled (background processing); in-memory SQLite shares one connection.
    """
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(database_url, pool_pre_ping=True)
    connect_args = {"check_same_thread": False}
    if url.database in (None, "", ":memory:"):
        return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, connect_args=connect_args)


def make_session_factory(engine: Engine) -> Callable[[], Session]:
    return sessionmaker(engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create all tables and insert the default presets that are not present yet."""
    SQLModel.metadata.create_all(engine)
    session_factory = make_session_factory(engine)
    session = session_factory()
    try:
        for data in DEFAULT_PRESETS:
            if session.get(Preset, data["id"]) is None:
                session.add(Preset(**data))
        session.commit()
    finally:
        session.close()
