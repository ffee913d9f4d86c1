from __future__ import annotations

import io
import json
from typing import Any

from PIL import Image

from lensocr.providers.base import TransportResponse


def png_bytes(width: int, height: int, color=(255, 255, 255)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def rect(x0: float, y0: float, x1: float, y1: float) -> list[list[float]]:
    return [[x0, y0], [x1, y0], [x1, y1], [x0, y1]]


def line(text: Any, geometry: Any, confidence: Any = None, language: Any = None, brk: Any = None) -> list:
    return [text, geometry, confidence, language, brk]


def payload(
    text_root: Any,
    *,
    revision: int = 2,
    language: str | None = "en",
    scale: Any = None,
    translations: Any = None,
) -> list:
    return [[revision, "req-1"], text_root, language, scale, translations]


def body(tree: Any, *, wrapped: bool = False, xssi: bool = True) -> bytes:
    if wrapped:
        tree = [["wrb.fr", "LensUpload", json.dumps(tree), None, None, None, "generic"], ["di", 42]]
    text = json.dumps(tree)
    if xssi:
        text = ")]}'\n\n" + text
    return text.encode("utf-8")


def ok(tree: Any, headers: dict | None = None, **kwargs) -> TransportResponse:
    return TransportResponse(status=200, body=body(tree, **kwargs), headers=headers or {})


class FakeTransport:
    """Replays queued responses (or raises queued exceptions); the last one repeats."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: list[dict] = []

    def post(self, url, *, body, headers, timeout):
        self.calls.append({"url": url, "body": body, "headers": dict(headers), "timeout": timeout})
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, BaseException):
            raise item
        return item
