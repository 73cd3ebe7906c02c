"""HTTP API: upload a batch for analysis, poll session results, presets and health."""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, Literal

from fastapi import BackgroundTasks, Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from seotagger import __version__
from seotagger.ai.endpoint_base import ModelEndpoint
from seotagger.ai.errors import ConfigurationError
from seotagger.ai.factory import get_model_endpoint
from seotagger.ai.schema import EndpointHealth
from seotagger.core.config import get_config
from seotagger.core.file_extensions import MAX_FILES_PER_BATCH
from seotagger.core.storage import RejectedUploadError, StoredUpload, UploadStore, verify_image_bytes
from seotagger.models.entities import ExportFormat, Image, Preset
from seotagger.repository.db import create_db_engine, init_db, make_session_factory
from seotagger.repository.image_repo import ImageRepository
from seotagger.repository.preset_repo import PresetRepository
from seotagger.workers.analysis_worker import AnalysisWorker

_log = logging.getLogger(__name__)

_started_at = time.monotonic()


@lru_cache(maxsize=1)
def _get_session_factory() -> Callable[[], Session]:
    engine = create_db_engine(get_config().database_url)
    init_db(engine)
    return make_session_factory(engine)


@lru_cache(maxsize=1)
def _get_image_repo() -> ImageRepository:
    return ImageRepository(_get_session_factory())


@lru_cache(maxsize=1)
def _get_preset_repo() -> PresetRepository:
    return PresetRepository(_get_session_factory())


@lru_cache(maxsize=1)
def _get_upload_store() -> UploadStore:
    return UploadStore()


def _get_endpoint() -> ModelEndpoint:
    return get_model_endpoint()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    _get_session_factory()
    yield


app = FastAPI(title="SEO Image Tagger", lifespan=lifespan)


@app.exception_handler(ConfigurationError)
async def _configuration_error_handler(_request: Request, exc: ConfigurationError) -> JSONResponse:
    _log.error("Model endpoint misconfigured: %s", exc)
    return JSONResponse(status_code=500, content={"error": "Model endpoint misconfigured", "message": str(exc)})


class MetadataOut(BaseModel):
    alt_text: str | None = None
    title: str
    keywords: list[str]


class ImageResultOut(BaseModel):
    id: str
    filename: str
    status: Literal["pending", "processing", "completed", "error"]
    metadata: MetadataOut | None = None
    error: str | None = None


class AnalyzeOut(BaseModel):
    session_id: str
    results: list[ImageResultOut]


class PresetOut(BaseModel):
    id: str
    name: str
    description: str | None = None
    title_max_length: int
    keywords_min: int
    keywords_max: int
    keyword_rules: dict[str, Any] | None = None
    export_format: str


class EndpointHealthOut(BaseModel):
    mode: str
    timestamp: str
    endpoint_health: EndpointHealth


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _image_out(image: Image) -> ImageResultOut:
    metadata = image.metadata_dict()
    return ImageResultOut(
        id=image.id,
        filename=image.original_name,
        status=image.status.value,
        metadata=MetadataOut(**metadata) if metadata else None,
        error=image.error_message if image.status.value == "error" else None,
    )


def _preset_out(preset: Preset) -> PresetOut:
    return PresetOut(
        id=preset.id,
        name=preset.name,
        description=preset.description,
        title_max_length=preset.title_max_length,
        keywords_min=preset.keywords_min,
        keywords_max=preset.keywords_max,
        keyword_rules=preset.keyword_rules,
        export_format=ExportFormat(preset.export_format).value,
    )


@app.post("/api/analyze", response_model=AnalyzeOut)
def api_analyze(
    background_tasks: BackgroundTasks,
    images: list[UploadFile] | None = File(default=None),
    session_id: str | None = Form(default=None),
    session_name: str | None = Form(default=None),
    preset_id: str | None = Form(default=None),
    image_repo: ImageRepository = Depends(_get_image_repo),
    preset_repo: PresetRepository = Depends(_get_preset_repo),
    store: UploadStore = Depends(_get_upload_store),
    endpoint: ModelEndpoint = Depends(_get_endpoint),
) -> AnalyzeOut:
    """Accept image files, record them as pending and analyze them in the background."""
    if not images:
        raise HTTPException(status_code=400, detail="No files uploaded")
    if len(images) > MAX_FILES_PER_BATCH:
        raise HTTPException(status_code=400, detail=f"Too many files (max {MAX_FILES_PER_BATCH})")

    preset = None
    if preset_id:
        preset = preset_repo.get(preset_id)
        if preset is None:
            raise HTTPException(status_code=404, detail="Preset not found")

    if session_id and image_repo.get_session(session_id) is None:
        raise HTTPException(status_code=404, detail="Session not found")

    payloads: list[tuple[str, bytes]] = []
    for upload in images:
        name = upload.filename or "upload"
        data = upload.file.read()
        try:
            store.check(name, len(data))
            verify_image_bytes(data, name)
        except RejectedUploadError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        payloads.append((name, data))

    # every payload is checked before the first write
    stored: list[StoredUpload] = [store.save_bytes(name, data) for name, data in payloads]

    if not session_id:
        session_id = image_repo.create_session(session_name).id
    worker = AnalysisWorker(image_repo, endpoint, preset=preset, prompt=get_config().default_prompt)
    records = worker.submit(session_id, stored)
    background_tasks.add_task(worker.process_batch, records, session_id)

    return AnalyzeOut(session_id=session_id, results=[_image_out(r) for r in records])


@app.get("/api/analyze/{session_id}", response_model=AnalyzeOut)
def api_analyze_results(
    session_id: str,
    image_repo: ImageRepository = Depends(_get_image_repo),
) -> AnalyzeOut:
    """Current status (and metadata once completed) of every image in the session."""
    if image_repo.get_session(session_id) is None:
        raise HTTPException(status_code=404, detail="Session not found")
    images = image_repo.get_images(session_id)
    return AnalyzeOut(session_id=session_id, results=[_image_out(i) for i in images])


@app.get("/api/presets", response_model=list[PresetOut])
def api_presets(preset_repo: PresetRepository = Depends(_get_preset_repo)) -> list[PresetOut]:
    return [_preset_out(p) for p in preset_repo.list_presets()]


@app.get("/api/presets/{preset_id}", response_model=PresetOut)
def api_preset(preset_id: str, preset_repo: PresetRepository = Depends(_get_preset_repo)) -> PresetOut:
    preset = preset_repo.get(preset_id)
    if preset is None:
        raise HTTPException(status_code=404, detail="Preset not found")
    return _preset_out(preset)


@app.get("/api/health")
def api_health() -> dict[str, Any]:
    return {
        "status": "ok",
        "timestamp": _now_iso(),
        "mode": get_config().model_endpoint_mode,
        "uptime": round(time.monotonic() - _started_at, 3),
        "version": __version__,
    }


@app.get("/api/health/model", response_model=EndpointHealthOut)
def api_health_model() -> JSONResponse:
    """Probe the configured model endpoint. Misconfiguration is reported as ok=false with 500."""
    mode = get_config().model_endpoint_mode
    try:
        result = get_model_endpoint().health()
    except ConfigurationError as e:
        out = EndpointHealthOut(mode=mode, timestamp=_now_iso(), endpoint_health=EndpointHealth(ok=False, info=str(e)))
        return JSONResponse(status_code=500, content=out.model_dump(mode="json"))
    out = EndpointHealthOut(mode=mode, timestamp=_now_iso(), endpoint_health=result)
    return JSONResponse(content=out.model_dump(mode="json"))


@app.get("/healthz", response_class=PlainTextResponse)
def healthz() -> str:
    return "OK"
