"""Convert uploaded files into encoded pictures for the analysis call."""

from __future__ import annotations

import logging
import mimetypes
from typing import Optional

from models.images import DEFAULT_MIME_TYPE, EncodedImage

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 16 * 1024 * 1024
ALLOWED_MIME_TYPES = {"image/jpeg", "image/png", "image/webp", "image/heic", "image/heif"}


class InvalidUploadError(ValueError):
    """Raised when an uploaded file cannot be used as an outfit photo."""


def _guess_mime_type(content_type: Optional[str], filename: Optional[str]) -> str:
    if content_type and content_type.startswith("image/"):
        return content_type.split(";", 1)[0].strip().lower()
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return DEFAULT_MIME_TYPE


def encode_upload(
    raw: bytes, content_type: Optional[str] = None, filename: Optional[str] = None
) -> EncodedImage:
    """Wrap raw upload bytes as an :class:`EncodedImage`.

    Raises:
        InvalidUploadError: If the file is empty, too large or not a supported image type.
    """

    if not raw:
        raise InvalidUploadError("Uploaded file is empty.")
    if len(raw) > MAX_UPLOAD_BYTES:
        raise InvalidUploadError(f"Uploaded file exceeds {MAX_UPLOAD_BYTES // (1024 * 1024)} MB.")
    mime_type = _guess_mime_type(content_type, filename)
    if mime_type not in ALLOWED_MIME_TYPES:
        raise InvalidUploadError(f"Unsupported image type '{mime_type}'.")
    logger.debug("Encoded upload", extra={"mime_type": mime_type, "size": len(raw)})
    return EncodedImage(mime_type=mime_type, data=raw)


def decode_data_url(value: str) -> EncodedImage:
    """Turn a browser ``data:image/...;base64,...`` string into an :class:`EncodedImage`.

    Raises:
        InvalidUploadError: If the payload is not valid base64 or fails the upload checks.
    """

    try:
        image = EncodedImage.from_data_url(value)
    except ValueError as exc:
        raise InvalidUploadError(str(exc)) from exc
    return encode_upload(image.data, content_type=image.mime_type)


__all__ = ["ALLOWED_MIME_TYPES", "InvalidUploadError", "MAX_UPLOAD_BYTES", "decode_data_url", "encode_upload"]
