from __future__ import annotations

from pathlib import PurePath

MAX_DOCUMENT_BYTES = 10 * 1024 * 1024

PDF_MIME_TYPE = "application/pdf"

_IMAGE_TYPES: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "bmp": "image/bmp",
}

SUPPORTED_MIME_TYPES = frozenset({PDF_MIME_TYPE, "image/jpg", *_IMAGE_TYPES.values()})


def _extension(filename: str) -> str:
    return PurePath(filename).suffix.lower().lstrip(".")


def is_supported_document(filename: str, content_type: str | None = None) -> bool:
    """PDFs and common raster images, judged by MIME type or extension."""
    if content_type in SUPPORTED_MIME_TYPES:
        return True
    extension = _extension(filename)
    return extension == "pdf" or extension in _IMAGE_TYPES


def guess_mime_type(filename: str) -> str:
    """MIME type from the file extension; unknown images default to JPEG."""
    extension = _extension(filename)
    if extension == "pdf":
        return PDF_MIME_TYPE
    return _IMAGE_TYPES.get(extension, "image/jpeg")
