"""Normalize an image reference (file path, data URL or bare base64) into base64 payload + MIME type."""

import base64
import mimetypes
import os
import re
from dataclasses import dataclass
from pathlib import Path

DEFAULT_MIME_TYPE = "image/jpeg"

_DATA_URL_RE = re.compile(r"^data:(image/[^;]+);base64,", re.IGNORECASE)
_BASE64_RE = re.compile(r"^[A-Za-z0-9+/=]+$")


@dataclass(frozen=True)
class EncodedImage:
    data: str
    mime_type: str = DEFAULT_MIME_TYPE

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


def _guess_mime_type(path: Path) -> str:
    mime, _ = mimetypes.guess_type(path.name)
    if mime and mime.startswith("image/"):
        return mime
    return DEFAULT_MIME_TYPE


def encode_image(reference: str | Path) -> EncodedImage:
    """
    Return the base64 payload for an image reference.

    A data URL has its prefix stripped (MIME kept). A string that looks like base64 and
    is not an existing file is passed through. Anything else is read from disk.
    Raises OSError if a path cannot be read.
    """
    if isinstance(reference, str):
        match = _DATA_URL_RE.match(reference)
        if match:
            return EncodedImage(data=reference[match.end():], mime_type=match.group(1).lower())
        if reference.startswith("data:"):
            return EncodedImage(data=reference.split(",", 1)[-1])
        if _BASE64_RE.match(reference) and not os.path.isfile(reference):
            return EncodedImage(data=reference)
    path = Path(reference)
    data = base64.b64encode(path.read_bytes()).decode("ascii")
    return EncodedImage(data=data, mime_type=_guess_mime_type(path))
