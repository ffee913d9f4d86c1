"""Image loading: file or bytes to an ImagePayload whose declared size matches its bytes."""

from __future__ import annotations

import io
import os
from pathlib import Path

from PIL import Image, ImageOps

from lensocr.types import ImagePayload

DEFAULT_MAX_SIDE = 1000
_EXIF_ORIENTATION = 0x0112

_PASSTHROUGH = {"PNG": "image/png", "JPEG": "image/jpeg", "WEBP": "image/webp"}


def _img_to_png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.convert("RGBA" if img.mode in ("RGBA", "LA", "P") else "RGB").save(buf, format="PNG")
    return buf.getvalue()


def load_image(source: str | os.PathLike | bytes, *, max_side: int = DEFAULT_MAX_SIDE) -> ImagePayload:
    """
    Read an image and prepare it for upload.

    Original bytes are passed through when the format is accepted as-is and
    no resize or EXIF rotation was needed; otherwise the image is re-encoded
    as PNG.
    """
    data = source if isinstance(source, bytes) else Path(source).read_bytes()
    with Image.open(io.BytesIO(data)) as opened:
        fmt = (opened.format or "").upper()
        img: Image.Image = opened
        changed = False
        if opened.getexif().get(_EXIF_ORIENTATION, 1) != 1:
            img = ImageOps.exif_transpose(opened)
            changed = True
        if max_side > 0 and max(img.size) > max_side:
            img = img.copy()
            img.thumbnail((max_side, max_side))
            changed = True

        if fmt in _PASSTHROUGH and not changed:
            return ImagePayload(data=data, width=opened.width, height=opened.height, mime=_PASSTHROUGH[fmt])

        w, h = img.size
        return ImagePayload(data=_img_to_png_bytes(img), width=w, height=h, mime="image/png")
