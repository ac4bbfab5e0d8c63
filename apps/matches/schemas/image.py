# apps/matches/schemas/image.py
"""The uploaded screenshot, carried around as bytes plus its MIME type."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Self

from apps.matches.conf import ALLOWED_IMAGE_TYPES, MAX_IMAGE_BYTES
from apps.matches.exceptions import InvalidImageError


@dataclass(frozen=True, slots=True)
class ImageBlob:
    content_type: str
    data: bytes

    @classmethod
    def from_data_uri(cls, uri: str) -> Self:
        header, sep, payload = uri.partition(",")
        if not sep or not header.startswith("data:") or not header.endswith(";base64"):
            raise InvalidImageError("The image must be a base64 data URI.")
        content_type = header[len("data:") : -len(";base64")].lower()
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise InvalidImageError(content_type=content_type)
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidImageError("The image payload is not valid base64.") from exc
        return cls.from_bytes(data, content_type)

    @classmethod
    def from_bytes(cls, data: bytes, content_type: str) -> Self:
        if not data:
            raise InvalidImageError("The image is empty.")
        if len(data) > MAX_IMAGE_BYTES:
            raise InvalidImageError("The image is too large.", max_bytes=MAX_IMAGE_BYTES)
        return cls(content_type=content_type, data=data)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_uri(self) -> str:
        return f"data:{self.content_type};base64,{self.to_base64()}"
