"""Single source of truth for accepted upload extensions, MIME types and size limits."""

IMAGE_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
}

IMAGE_EXTENSIONS = frozenset(IMAGE_MIME_TYPES)

# List form with leading dots, sorted (help texts, error messages)
IMAGE_EXTENSIONS_LIST = sorted(IMAGE_EXTENSIONS)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
MAX_FILES_PER_BATCH = 50


def mime_type_for(ext: str) -> str:
    """MIME type for an extension (with leading dot); image/jpeg when unknown."""
    return IMAGE_MIME_TYPES.get(ext.lower(), "image/jpeg")
