"""Analysis worker: records a batch as pending, then drives each image to completed or error."""

import logging
import signal
import threading
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from seotagger.ai.endpoint_base import ModelEndpoint
from seotagger.ai.factory import get_model_endpoint
from seotagger.ai.schema import AnalysisResult, ValidationOutcome
from seotagger.core.config import DEFAULT_PROMPT
from seotagger.core.storage import StoredUpload
from seotagger.models.entities import Image, ImageStatus, Preset
from seotagger.repository.image_repo import ImageRepository
from seotagger.workers.validation import validate_metadata

_log = logging.getLogger(__name__)


class DuplicateSubmissionError(RuntimeError):
    """An analysis for this image id is already in flight."""


class MetadataValidationError(ValueError):
    """Normalized metadata failed preset validation with hard errors."""


@dataclass
class ImageOutcome:
    image_id: str
    original_name: str
    status: ImageStatus
    result: AnalysisResult | None = None
    validation: ValidationOutcome | None = None
    error: str | None = None


@dataclass
class BatchReport:
    session_id: str | None
    outcomes: list[ImageOutcome] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    def _count(self, status: ImageStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def completed(self) -> int:
        return self._count(ImageStatus.completed)

    @property
    def failed(self) -> int:
        return self._count(ImageStatus.error)

    @property
    def not_started(self) -> int:
        return self._count(ImageStatus.pending)


def _error_message(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


class AnalysisWorker:
    """
    Drives images through pending -> processing -> completed | error.

    Every image of a batch is persisted as pending before any model call. Images are
    then processed in submission order (max_workers=1) or on a bounded thread pool;
    in both cases at most one analysis per image id is in flight and a failure only
    affects its own image. cancel() stops new images from starting and interrupts a
    retry backoff; images never started stay pending.
    """

    def __init__(
        self,
        image_repo: ImageRepository,
        endpoint: ModelEndpoint | None = None,
        *,
        preset: Preset | None = None,
        prompt: str | None = None,
        model: str | None = None,
        max_workers: int = 1,
        cancel_event: threading.Event | None = None,
        verbose: bool = False,
    ) -> None:
        self.image_repo = image_repo
        self.endpoint = endpoint if endpoint is not None else get_model_endpoint()
        self.preset = preset
        self.prompt = prompt or DEFAULT_PROMPT
        self.model = model
        self.max_workers = max(1, max_workers)
        self._cancel_event = cancel_event or threading.Event()
        self._verbose = verbose
        self._in_flight: set[str] = set()
        self._in_flight_lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        self._cancel_event.set()

    def install_signal_handlers(self) -> None:
        """Register SIGINT and SIGTERM to cancel the batch gracefully (main thread only)."""
        if threading.current_thread() is not threading.main_thread():
            return

        def _handler(_signum: int, _frame: Any) -> None:
            _log.warning("Cancellation requested; images not yet started stay pending")
            self.cancel()

        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)

    def _claim(self, image_id: str) -> None:
        with self._in_flight_lock:
            if image_id in self._in_flight:
                raise DuplicateSubmissionError(f"Image {image_id} is already being analyzed")
            self._in_flight.add(image_id)

    def _release(self, image_id: str) -> None:
        with self._in_flight_lock:
            self._in_flight.discard(image_id)

    def submit(self, session_id: str, uploads: Sequence[StoredUpload]) -> list[Image]:
        """Persist every upload as a pending image record; no model call happens here."""
        images: list[Image] = []
        for upload in uploads:
            record = Image(
                session_id=session_id,
                filename=upload.filename,
                original_name=upload.original_name,
                file_path=upload.file_path,
                file_size=upload.file_size,
                mime_type=upload.mime_type,
                status=ImageStatus.pending,
            )
            images.append(self.image_repo.create_image(record))
        _log.info("Session %s: %s image(s) recorded as pending", session_id, len(images))
        return images

    def _fail(self, image: Image, message: str) -> ImageOutcome:
        """Record error status; a storage failure here is logged and reflected in the outcome."""
        try:
            self.image_repo.mark_error(image.id, message)
        except Exception as e:
            _log.error(
                "Could not record error status for image %s (%s): %s",
                image.id,
                image.original_name,
                e,
                exc_info=True,
            )
            message = f"{message} (status not persisted: {_error_message(e)})"
        return ImageOutcome(image.id, image.original_name, ImageStatus.error, error=message)

    def process_image(self, image: Image) -> ImageOutcome:
        """Analyze one pending image and persist its terminal status. Never raises for model errors."""
        self._claim(image.id)
        try:
            if self.cancelled:
                return ImageOutcome(image.id, image.original_name, ImageStatus.pending, error="Cancelled before start")

            try:
                self.image_repo.mark_processing(image.id)
            except Exception as e:
                _log.error("Could not mark image %s processing: %s", image.id, e, exc_info=True)
                return self._fail(image, f"Storage error: {_error_message(e)}")

            try:
                result = self.endpoint.analyze(
                    image.file_path,
                    self.prompt,
                    self.model,
                    cancel_event=self._cancel_event,
                )
                validation = validate_metadata(result, self.preset)
                for warning in validation.warnings:
                    _log.info("Image %s (%s): %s", image.id, image.original_name, warning)
                if not validation.is_valid:
                    raise MetadataValidationError("; ".join(validation.errors))
            except Exception as e:
                _log.error(
                    "Analysis failed for image %s (%s): %s",
                    image.id,
                    image.original_name,
                    e,
                    exc_info=True,
                )
                return self._fail(image, _error_message(e))

            try:
                self.image_repo.mark_completed(image.id, result)
            except Exception as e:
                _log.error("Could not store result for image %s: %s", image.id, e, exc_info=True)
                return self._fail(image, f"Storage error: {_error_message(e)}")

            if self._verbose:
                _log.info("Completed image %s (%s)", image.id, image.original_name)
            return ImageOutcome(
                image.id,
                image.original_name,
                ImageStatus.completed,
                result=result,
                validation=validation,
            )
        finally:
            self._release(image.id)

    def _process_guarded(self, image: Image) -> ImageOutcome:
        try:
            return self.process_image(image)
        except DuplicateSubmissionError as e:
            _log.warning("%s; skipping", e)
            return ImageOutcome(image.id, image.original_name, ImageStatus.processing, error=str(e))

    def process_batch(self, images: Sequence[Image], session_id: str | None = None) -> BatchReport:
        """
        Process images and return a per-image report in submission order.
        A batch with no successes is still a normal report, never an exception.
        """
        started = time.perf_counter()
        unique: list[Image] = []
        seen: set[str] = set()
        for image in images:
            if image.id in seen:
                _log.warning("Image %s listed twice in batch; processing once", image.id)
                continue
            seen.add(image.id)
            unique.append(image)

        if self.max_workers == 1 or len(unique) <= 1:
            outcomes = [self._process_guarded(image) for image in unique]
        else:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(unique))) as executor:
                outcomes = list(executor.map(self._process_guarded, unique))

        report = BatchReport(
            session_id=session_id,
            outcomes=outcomes,
            elapsed_seconds=time.perf_counter() - started,
        )
        _log.info(
            "Batch%s: %s completed, %s failed, %s not started in %.1fs",
            f" {session_id}" if session_id else "",
            report.completed,
            report.failed,
            report.not_started,
            report.elapsed_seconds,
        )
        return report

    def run(self, session_id: str, uploads: Sequence[StoredUpload]) -> BatchReport:
        """Submit uploads as pending, then process them."""
        images = self.submit(session_id, uploads)
        return self.process_batch(images, session_id=session_id)
