from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ImageMime = Literal["image/png", "image/jpeg", "image/webp"]

Point = tuple[float, float]


class ImagePayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: bytes
    width: int
    height: int
    mime: ImageMime = "image/png"

    @property
    def extension(self) -> str:
        return self.mime.split("/", 1)[1].replace("jpeg", "jpg")


class Word(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    separator: str = ""
    polygon: tuple[Point, ...] | None = None  # same space and winding as TextSegment.polygon


class TextSegment(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    language: str = "unknown"  # ISO-639-1 or "unknown"
    polygon: tuple[Point, ...]  # normalized [0,1], clockwise from top-left
    reading_order_index: int = Field(ge=0)
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    paragraph_index: int = 0
    angle_deg: float = 0.0
    line_break: str = "\n"
    words: tuple[Word, ...] = ()

    def bounds(self) -> tuple[float, float, float, float]:
        xs = [p[0] for p in self.polygon]
        ys = [p[1] for p in self.polygon]
        return min(xs), min(ys), max(xs), max(ys)

    def to_pixels(self, width: int, height: int) -> list[Point]:
        return [(x * width, y * height) for x, y in self.polygon]


class OcrResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    full_text: str
    segments: tuple[TextSegment, ...] = ()
    source_image_size: tuple[int, int]
    language: str = "unknown"
    translation: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.segments

    def paragraphs(self) -> list[list[TextSegment]]:
        """Regroup segments by the service paragraph they came from, in reading order."""
        groups: dict[int, list[TextSegment]] = {}
        for seg in self.segments:
            groups.setdefault(seg.paragraph_index, []).append(seg)
        return sorted(groups.values(), key=lambda g: g[0].reading_order_index)
