"""Builds the multipart upload request the visual-search service expects."""

from __future__ import annotations

import hashlib
import io
import logging
from dataclasses import dataclass, field

from PIL import Image, UnidentifiedImageError
from urllib3.filepost import encode_multipart_formdata

from lensocr.constants import (
    BOUNDARY_PREFIX,
    DEFAULT_USER_AGENT,
    FIELD_DIMENSIONS,
    FIELD_HEIGHT,
    FIELD_IMAGE,
    FIELD_LANGUAGE,
    FIELD_MIME,
    FIELD_WIDTH,
    HEADER_SEQUENCE,
    LENS_ORIGIN,
)
from lensocr.errors import DimensionMismatch
from lensocr.session import SessionState
from lensocr.types import ImagePayload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncodedRequest:
    body: bytes
    content_type: str
    headers: dict[str, str] = field(default_factory=dict)
    sequence_id: int = 0


def _probe_size(data: bytes) -> tuple[int, int] | None:
    """Read the real pixel size from the image header, if Pillow understands it."""
    try:
        with Image.open(io.BytesIO(data)) as im:
            return im.size
    except (UnidentifiedImageError, OSError):
        return None


def _boundary(image: ImagePayload, sequence_id: int) -> str:
    digest = hashlib.sha1(image.data)
    digest.update(f"{sequence_id}:{image.width}x{image.height}".encode("ascii"))
    return BOUNDARY_PREFIX + digest.hexdigest()[:16]


def check_dimensions(image: ImagePayload) -> None:
    declared = (image.width, image.height)
    if image.width <= 0 or image.height <= 0:
        raise DimensionMismatch(declared)
    actual = _probe_size(image.data)
    if actual is None:
        logger.debug("could not read image header; trusting declared size %dx%d", *declared)
    elif actual != declared:
        raise DimensionMismatch(declared, actual)


def encode(
    image: ImagePayload,
    session: SessionState,
    language_hint: str | None = None,
    *,
    user_agent: str = DEFAULT_USER_AGENT,
) -> EncodedRequest:
    """
    Encode one upload request.

    The current sequence id is embedded but not consumed; the caller advances
    the session once the transport call has returned.
    """
    check_dimensions(image)
    sequence_id = session.sequence_id

    fields: list[tuple[str, object]] = [
        (FIELD_IMAGE, (f"image.{image.extension}", image.data, image.mime)),
        (FIELD_WIDTH, str(image.width)),
        (FIELD_HEIGHT, str(image.height)),
        (FIELD_DIMENSIONS, f"{image.width},{image.height}"),
        (FIELD_MIME, image.mime),
    ]
    if language_hint:
        fields.append((FIELD_LANGUAGE, language_hint))

    body, content_type = encode_multipart_formdata(fields, boundary=_boundary(image, sequence_id))

    headers = {
        "User-Agent": user_agent,
        "Content-Type": content_type,
        "Origin": LENS_ORIGIN,
        "Referer": f"{LENS_ORIGIN}/",
        HEADER_SEQUENCE: str(sequence_id),
    }
    if session.cookie:
        headers["Cookie"] = session.cookie

    return EncodedRequest(body=body, content_type=content_type, headers=headers, sequence_id=sequence_id)
