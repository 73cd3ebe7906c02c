"""Pytest fixtures. In-memory SQLite per test, isolated config/env, stub model endpoint."""

import logging
import threading
from pathlib import Path

import pytest
from PIL import Image as PILImage

from seotagger.ai.factory import reset_model_endpoint
from seotagger.ai.schema import AnalysisResult, EndpointHealth
from seotagger.core.config import DEFAULT_CONFIG_ENV_VAR, ENV_OVERRIDES, reset_config
from seotagger.repository.db import create_db_engine, init_db, make_session_factory
from seotagger.repository.image_repo import ImageRepository
from seotagger.repository.preset_repo import PresetRepository

STUB_KEYWORDS = [
    "red", "square", "graphic", "color", "shape", "abstract", "simple", "minimal",
    "design", "background", "geometry", "bold", "flat", "pattern", "art", "bright",
]


def clear_app_caches() -> None:
    """
    Clear config, the cached model endpoint and the API's lru_cache'd repositories so
    each test sees its own DATABASE_URL / env.
    """
    from seotagger.api.main import (
        _get_image_repo,
        _get_preset_repo,
        _get_session_factory,
        _get_upload_store,
    )

    reset_config()
    reset_model_endpoint()
    _get_session_factory.cache_clear()
    _get_image_repo.cache_clear()
    _get_preset_repo.cache_clear()
    _get_upload_store.cache_clear()


class StubEndpoint:
    """
    In-process model endpoint. handler(image_reference, prompt, model) returns an
    AnalysisResult or raises; the default describes the file by its stem.
    """

    mode = "stub"

    def __init__(self, handler=None, healthy: bool = True) -> None:
        self.handler = handler or self._default
        self.healthy = healthy
        self.calls: list[tuple[str, str, str | None]] = []
        self._lock = threading.Lock()

    @staticmethod
    def _default(image_reference, prompt, model):
        stem = Path(str(image_reference)).stem
        return AnalysisResult(
            alt_text=f"A red square graphic ({stem})",
            title=f"Red square graphic {stem}",
            keywords=list(STUB_KEYWORDS),
        )

    def analyze(self, image_reference, prompt, model=None, *, cancel_event=None):
        with self._lock:
            self.calls.append((str(image_reference), prompt, model))
        return self.handler(image_reference, prompt, model)

    def health(self):
        if self.healthy:
            return EndpointHealth(ok=True, info="stub endpoint ready")
        return EndpointHealth(ok=False, info="stub endpoint down")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run every test in tmp_path with no endpoint env vars and fresh caches."""
    for key in (*ENV_OVERRIDES, DEFAULT_CONFIG_ENV_VAR):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    clear_app_caches()
    yield tmp_path
    clear_app_caches()
    # setup_logging() (CLI) replaces root handlers; put pytest's back
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def engine():
    """In-memory SQLite engine with tables and default presets."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def image_repo(session_factory):
    return ImageRepository(session_factory)


@pytest.fixture
def preset_repo(session_factory):
    return PresetRepository(session_factory)


@pytest.fixture
def stub_endpoint():
    return StubEndpoint()


@pytest.fixture
def stub_endpoint_factory():
    """StubEndpoint class, for tests that need a custom handler."""
    return StubEndpoint


@pytest.fixture
def make_png(tmp_path):
    """Yields a function writing a small PNG under tmp_path/images and returning its path."""
    images_dir = tmp_path / "images"
    images_dir.mkdir(exist_ok=True)

    def _make(name: str = "sample.png", color: str = "red", size: tuple[int, int] = (16, 16)) -> Path:
        path = images_dir / name
        PILImage.new("RGB", size, color).save(path, format="PNG")
        return path

    return _make
