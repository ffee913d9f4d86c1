"""Geometry normalizer: raw service coordinates to canonical unit-square polygons."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

import numpy as np

from lensocr.constants import SCALE_CANVAS, SCALE_NORMALIZED, SCALE_PIXELS
from lensocr.layout_order import infer_reading_order
from lensocr.types import Point, TextSegment, Word

if TYPE_CHECKING:
    from lensocr.decoder import DecodedTree, RawLine, ScaleHint

logger = logging.getLogger(__name__)

# Area below which a unit-space polygon counts as degenerate.
MIN_AREA = 1e-9
# Largest coordinate still read as normalized; rotated boxes at an edge overshoot 1.0.
NORMALIZED_MAX = 1.5


def box_corners(cx: float, cy: float, w: float, h: float, rotation: float = 0.0) -> list[Point]:
    """Corners of a box given by centre, size and rotation (radians, clockwise on screen)."""
    c, s = math.cos(rotation), math.sin(rotation)
    corners = []
    for dx, dy in ((-w / 2, -h / 2), (w / 2, -h / 2), (w / 2, h / 2), (-w / 2, h / 2)):
        corners.append((cx + dx * c - dy * s, cy + dx * s + dy * c))
    return corners


def rect_corners(p0: Point, p1: Point) -> list[Point]:
    x0, x1 = sorted((p0[0], p1[0]))
    y0, y1 = sorted((p0[1], p1[1]))
    return [(x0, y0), (x1, y0), (x1, y1), (x0, y1)]


def detect_scale(
    points: np.ndarray,
    source_size: tuple[int, int],
    hint: "ScaleHint | None" = None,
) -> tuple[float, float]:
    """
    Return the (sx, sy) divisors that map raw coordinates into [0, 1].

    A declared scale wins. Without one the unit is inferred from the largest
    coordinate of ``points``, which should hold every point of the response
    so all segments share one unit. A maximum of at most ``NORMALIZED_MAX``
    (and below the smaller source side) means normalized, anything larger
    means pixels of the source image.
    """
    width, height = source_size
    if hint is not None:
        if hint.kind == SCALE_NORMALIZED:
            return 1.0, 1.0
        if hint.kind == SCALE_PIXELS:
            return float(width), float(height)
        if hint.kind == SCALE_CANVAS and hint.width and hint.height:
            return float(hint.width), float(hint.height)
    if not points.size:
        return 1.0, 1.0
    peak = float(np.abs(points).max())
    if peak <= NORMALIZED_MAX and peak < min(width, height):
        return 1.0, 1.0
    return float(width), float(height)


def polygon_area(points: np.ndarray) -> float:
    x, y = points[:, 0], points[:, 1]
    return 0.5 * abs(float(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1))))


def canonical_polygon(points: np.ndarray) -> np.ndarray:
    """Order points clockwise (screen coordinates, y down) starting from the top-left-most."""
    centroid = points.mean(axis=0)
    angles = np.arctan2(points[:, 1] - centroid[1], points[:, 0] - centroid[0])
    ordered = points[np.argsort(angles, kind="stable")]
    start = int(np.argmin(ordered[:, 0] + ordered[:, 1]))
    return np.roll(ordered, -start, axis=0)


def language_code(code: str | None) -> str:
    """Reduce a service language tag to its ISO-639-1 code, or "unknown"."""
    if not code:
        return "unknown"
    primary = code.strip().replace("_", "-").split("-", 1)[0].lower()
    if len(primary) == 2 and primary.isalpha():
        return primary
    return "unknown"


def _all_points(tree: "DecodedTree") -> np.ndarray:
    pts: list[Point] = []
    for line in tree.lines:
        pts.extend(line.points)
        for word in line.words:
            pts.extend(word.points or ())
    return np.asarray(pts, dtype=float).reshape(-1, 2)


def _unit_polygon(points: list[Point], scale: np.ndarray) -> np.ndarray:
    pts = np.asarray(points, dtype=float) / scale
    return canonical_polygon(np.clip(pts, 0.0, 1.0))


def _words(line: "RawLine", scale: np.ndarray) -> tuple[Word, ...]:
    words = []
    for word in line.words:
        polygon = None
        if word.points:
            poly = _unit_polygon(word.points, scale)
            if polygon_area(poly) > MIN_AREA:
                polygon = tuple((float(x), float(y)) for x, y in poly)
        words.append(Word(text=word.text, separator=word.separator, polygon=polygon))
    return tuple(words)


def normalize(tree: "DecodedTree", source_size: tuple[int, int]) -> list[TextSegment]:
    """Convert decoded lines into TextSegments in reading order, dropping degenerate ones."""
    scale = np.array(detect_scale(_all_points(tree), source_size, tree.scale))
    kept: list[tuple["RawLine", np.ndarray]] = []
    for line in tree.lines:
        if not line.text.strip():
            continue
        poly = _unit_polygon(line.points, scale)
        if polygon_area(poly) <= MIN_AREA:
            logger.debug("dropping zero-area segment %r", line.text)
            continue
        kept.append((line, poly))

    boxes = [(float(p[:, 0].min()), float(p[:, 1].min()), float(p[:, 0].max()), float(p[:, 1].max())) for _, p in kept]
    reading = infer_reading_order(boxes, [line.order for line, _ in kept])

    segments: list[TextSegment] = []
    for rank, i in enumerate(reading.ordered_indices):
        line, poly = kept[i]
        segments.append(
            TextSegment(
                text=line.text,
                language=language_code(line.language or tree.language),
                polygon=tuple((float(x), float(y)) for x, y in poly),
                reading_order_index=rank,
                confidence=line.confidence,
                paragraph_index=line.paragraph,
                angle_deg=line.angle_deg,
                line_break=line.line_break,
                words=_words(line, scale),
            )
        )
    return segments
