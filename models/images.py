"""Encoded picture exchanged with the generative model."""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass

DEFAULT_MIME_TYPE = "image/jpeg"
_DATA_URL_PATTERN = re.compile(r"^data:(image/[a-zA-Z0-9.+-]+);base64,(.+)$", re.DOTALL)


@dataclass(frozen=True)
class EncodedImage:
    mime_type: str
    data: bytes

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"

    @classmethod
    def from_data_url(cls, value: str) -> "EncodedImage":
        """Parse ``data:image/...;base64,...``.

        A value without the data-URL prefix is treated as a bare base64 JPEG
        payload. Data URLs for anything other than a base64 image are rejected.
        """

        value = value.strip()
        match = _DATA_URL_PATTERN.match(value)
        if match:
            mime_type, payload = match.group(1), match.group(2)
        elif value.startswith("data:"):
            raise ValueError("not a base64 image data URL")
        else:
            mime_type = DEFAULT_MIME_TYPE
            payload = value.split(",", 1)[1] if "," in value else value
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("image payload is not valid base64") from exc
        if not data:
            raise ValueError("image payload is empty")
        return cls(mime_type=mime_type, data=data)


__all__ = ["EncodedImage", "DEFAULT_MIME_TYPE"]
