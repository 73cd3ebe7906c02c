"""Upload store: accept image files, verify them with Pillow and write them under upload_dir."""

import io
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from PIL import Image, UnidentifiedImageError

from seotagger.core.config import get_config
from seotagger.core.file_extensions import (
    IMAGE_EXTENSIONS,
    IMAGE_EXTENSIONS_LIST,
    MAX_UPLOAD_BYTES,
    mime_type_for,
)

_log = logging.getLogger(__name__)


class RejectedUploadError(ValueError):
    """File is not an accepted image (extension, size or undecodable content)."""


@dataclass(frozen=True)
class StoredUpload:
    filename: str
    original_name: str
    file_path: str
    file_size: int
    mime_type: str


def _atomic_write(dest_path: Path, write_fn: Callable[[Path], None]) -> None:
    """Write to tmp path then atomically rename. Clean up tmp on failure."""
    tmp_path = dest_path.with_suffix(dest_path.suffix + ".tmp")
    try:
        write_fn(tmp_path)
        tmp_path.replace(dest_path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def verify_image_bytes(data: bytes, original_name: str) -> None:
    """Raise RejectedUploadError unless Pillow can identify data as an image."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise RejectedUploadError(f"Not a readable image: {original_name}") from e


class UploadStore:
    """
    Stores accepted uploads flat under upload_dir as {uuid}{ext}.
    Only checks and writes files; image records are the repository's concern.
    """

    def __init__(self, upload_dir: str | Path | None = None) -> None:
        self.upload_dir = Path(upload_dir if upload_dir is not None else get_config().upload_dir)

    def check(self, original_name: str, size: int) -> str:
        """Validate name and size before reading content; return the lower-cased extension."""
        ext = Path(original_name).suffix.lower()
        if ext not in IMAGE_EXTENSIONS:
            raise RejectedUploadError(
                f"Only image files are allowed ({', '.join(IMAGE_EXTENSIONS_LIST)}): {original_name}"
            )
        if size > MAX_UPLOAD_BYTES:
            raise RejectedUploadError(
                f"File too large: {original_name} ({size} bytes, limit {MAX_UPLOAD_BYTES})"
            )
        return ext

    def save_bytes(self, original_name: str, data: bytes) -> StoredUpload:
        ext = self.check(original_name, len(data))
        verify_image_bytes(data, original_name)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{uuid.uuid4()}{ext}"
        dest = self.upload_dir / filename
        _atomic_write(dest, lambda p: p.write_bytes(data))
        _log.debug("Stored upload %s as %s (%s bytes)", original_name, dest, len(data))
        return StoredUpload(
            filename=filename,
            original_name=original_name,
            file_path=str(dest.resolve()),
            file_size=len(data),
            mime_type=mime_type_for(ext),
        )

    def register_local(self, path: str | Path) -> StoredUpload:
        """Describe an existing local file (CLI batches) without copying it."""
        path = Path(path)
        if not path.is_file():
            raise RejectedUploadError(f"File not found: {path}")
        size = path.stat().st_size
        ext = self.check(path.name, size)
        return StoredUpload(
            filename=path.name,
            original_name=path.name,
            file_path=str(path.resolve()),
            file_size=size,
            mime_type=mime_type_for(ext),
        )
