"""
Response decoder.

The service answers with positional nested arrays instead of named fields.
Known layout of the payload (index paths), shared by every revision:

    [0]        metadata      [revision, request_id, ...]
    [1]        text root     revision 1: [line, ...]
                             revision 2: [[[line, ...], language?], ...]
    [2]        language      "en"
    [3]        scale         [kind, canvas_w, canvas_h]  (0 normalized, 1 pixels, 2 canvas)
    [4]        translations  [[status, text], ...]       (status 1 = success)

    line       [text, geometry, confidence?, language?, break?, words?]
    word       [text, separator?, geometry?]
    geometry   [[x, y], ...] | [[x0, y0], [x1, y1]] | [cx, cy, w, h, rotation_rad?]

When a line carries words, its text is rebuilt from each word followed by
its separator; the line's own text slot is only a fallback.

The payload may arrive directly or wrapped in a batch RPC envelope
``[["wrb.fr", rpc_id, "<payload json>", ...], ...]``.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any

from lensocr.constants import (
    KNOWN_REVISIONS,
    RATE_LIMIT_MARKERS,
    RPC_ENVELOPE,
    RPC_ERROR,
    SCALE_CANVAS,
    SCALE_NORMALIZED,
    SCALE_PIXELS,
    XSSI_PREFIX,
)
from lensocr.errors import ProtocolErrorKind, ServiceRejection, UnrecognizedShape
from lensocr.geometry import box_corners, rect_corners
from lensocr.tree import Node, snapshot
from lensocr.types import Point

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScaleHint:
    kind: int
    width: float | None = None
    height: float | None = None


@dataclass(frozen=True)
class RawWord:
    text: str
    separator: str = ""
    points: list[Point] | None = None


@dataclass(frozen=True)
class RawLine:
    order: int  # position in the service's own array order
    paragraph: int
    text: str
    points: list[Point]
    angle_deg: float = 0.0
    confidence: float | None = None
    language: str | None = None
    line_break: str = "\n"
    words: list[RawWord] = field(default_factory=list)


@dataclass
class DecodedTree:
    revision: int
    lines: list[RawLine] = field(default_factory=list)
    language: str | None = None
    scale: ScaleHint | None = None
    translation: str | None = None
    dropped: int = 0  # malformed nodes discarded
    coerced: int = 0  # leaves of the wrong kind that were converted or blanked
    notes: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.lines


def _rejection_from_code(code: int | None) -> ServiceRejection | None:
    if code == 429:
        return ServiceRejection(ProtocolErrorKind.RATE_LIMITED, "service reported HTTP 429")
    if code in (401, 403):
        return ServiceRejection(ProtocolErrorKind.SESSION_EXPIRED, f"service reported HTTP {code}")
    return None


def parse_body(raw: bytes) -> Any:
    """Parse the body into a generic tree, skipping the XSSI guard and chunk lengths."""
    text = raw.decode("utf-8", errors="replace").lstrip()
    if text.startswith("<"):
        lowered = raw.lower()
        if any(marker in lowered for marker in RATE_LIMIT_MARKERS):
            raise ServiceRejection(ProtocolErrorKind.RATE_LIMITED, "anti-automation page returned")
        raise UnrecognizedShape("body is markup, not a tree", snapshot(text))
    if text.startswith(XSSI_PREFIX):
        text = text[len(XSSI_PREFIX):]
    start = text.find("[")
    if start < 0:
        raise UnrecognizedShape("body holds no array", snapshot(text))
    try:
        tree, _ = json.JSONDecoder().raw_decode(text, start)
    except json.JSONDecodeError as ex:
        raise UnrecognizedShape(f"body is not valid JSON: {ex.msg}", snapshot(text)) from ex
    return tree


def _envelopes(root: Node) -> list[Node]:
    tags = (RPC_ENVELOPE, RPC_ERROR)
    if root.at(0, 0).as_str() in tags:
        entries = root.as_list() or []
    elif root.at(0, 0, 0).as_str() in tags:
        # chunked responses nest the envelope list one level deeper
        entries = root.at(0).as_list() or []
    else:
        return []
    return [e for e in entries if e.at(0).as_str() in tags]


def unwrap(root: Node) -> Node:
    """Return the payload node, unpacking a batch RPC envelope when present."""
    for env in _envelopes(root):
        tag = env.at(0).as_str()
        if tag == RPC_ERROR:
            codes = [n.as_int() for n in env.as_list() or []]
            code = next((c for c in codes if c is not None and 100 <= c < 600), None)
            rejection = _rejection_from_code(code)
            if rejection is not None:
                raise rejection
            raise UnrecognizedShape(f"service error envelope (code={code})", snapshot(root.value))
        if tag == RPC_ENVELOPE:
            inner = env.at(2).as_str()
            if inner is None:
                raise UnrecognizedShape("RPC envelope without payload", snapshot(root.value))
            try:
                return Node(json.loads(inner))
            except json.JSONDecodeError as ex:
                raise UnrecognizedShape("RPC payload is not valid JSON", snapshot(inner)) from ex
    return root


def _parse_geometry(node: Node) -> tuple[list[Point], float] | None:
    items = node.as_list()
    if not items:
        return None
    if all(not n.is_list() for n in items):
        nums = [n.as_float() for n in items[:5]]
        if len(nums) < 4 or any(v is None for v in nums[:4]):
            return None
        cx, cy, w, h = nums[:4]
        rotation = nums[4] if len(nums) > 4 and nums[4] is not None else 0.0
        return box_corners(cx, cy, w, h, rotation), math.degrees(rotation)

    points: list[Point] = []
    for p in items:
        x, y = p.at(0).as_float(), p.at(1).as_float()
        if x is not None and y is not None:
            points.append((x, y))
    if len(points) == 2:
        return rect_corners(points[0], points[1]), 0.0
    if len(points) < 4:
        return None
    return points, 0.0


class _Walker:
    def __init__(self, tree: DecodedTree):
        self.tree = tree
        self.order = 0

    def words(self, node: Node) -> list[RawWord]:
        tree = self.tree
        words = []
        for entry in node.as_list() or []:
            if not entry.is_list():
                continue
            text = entry.at(0).as_text()
            if text is None:
                tree.dropped += 1
                tree.notes.append(f"line {self.order}: word without text")
                continue
            if entry.at(0).as_str() is None:
                tree.coerced += 1
            geom = _parse_geometry(entry.at(2))
            words.append(
                RawWord(
                    text=text,
                    separator=entry.at(1).as_str() or "",
                    points=geom[0] if geom is not None else None,
                )
            )
        return words

    def line(self, node: Node, paragraph: int, default_language: str | None = None) -> None:
        tree = self.tree
        words = self.words(node.at(5))
        text_node = node.at(0)
        text = text_node.as_text()
        if words:
            text = "".join(w.text + w.separator for w in words).strip()
        elif text is None:
            tree.dropped += 1
            tree.notes.append(f"line {self.order}: no text")
            self.order += 1
            return
        elif text_node.as_str() is None:
            tree.coerced += 1

        geom = _parse_geometry(node.at(1))
        if geom is None:
            tree.dropped += 1
            tree.notes.append(f"line {self.order}: no usable geometry")
            self.order += 1
            return
        points, angle = geom

        conf_node = node.at(2)
        confidence = conf_node.as_float()
        if confidence is not None and not 0.0 <= confidence <= 1.0:
            confidence = None
        if confidence is None and not conf_node.missing:
            tree.coerced += 1

        lang_node = node.at(3)
        if not lang_node.missing and lang_node.as_str() is None:
            tree.coerced += 1

        tree.lines.append(
            RawLine(
                order=self.order,
                paragraph=paragraph,
                text=text,
                points=points,
                angle_deg=angle,
                confidence=confidence,
                language=lang_node.as_str() or default_language,
                line_break=node.at(4).as_str() or "\n",
                words=words,
            )
        )
        self.order += 1

    def flat(self, root: list[Node]) -> None:
        for entry in root:
            if entry.is_list():
                self.line(entry, 0)

    def paragraphs(self, root: list[Node]) -> None:
        para_index = 0
        for entry in root:
            if not entry.is_list():
                continue  # interleaved metadata
            lines = entry.at(0).as_list()
            if lines is None:
                if entry.at(0).as_str() is None:
                    self.tree.dropped += 1
                    self.tree.notes.append(f"paragraph {para_index}: no line list")
                continue
            para_lang = entry.at(1).as_str()
            for line in lines:
                if line.is_list():
                    self.line(line, para_index, para_lang)
            para_index += 1


def _parse_scale(node: Node, tree: DecodedTree) -> ScaleHint | None:
    if not node.is_list():
        return None
    kind = node.at(0).as_int()
    if kind not in (SCALE_NORMALIZED, SCALE_PIXELS, SCALE_CANVAS):
        tree.notes.append(f"unknown scale kind {node.at(0).value!r}")
        return None
    width, height = node.at(1).as_float(), node.at(2).as_float()
    if kind == SCALE_CANVAS and not (width and height and width > 0 and height > 0):
        tree.notes.append("canvas scale without canvas size")
        return None
    return ScaleHint(kind=kind, width=width, height=height)


def _parse_translation(node: Node) -> str | None:
    parts = []
    for entry in node.as_list() or []:
        if entry.at(0).as_int() == 1:
            text = entry.at(1).as_str()
            if text:
                parts.append(text)
    return "\n".join(parts) if parts else None


def decode_tree(value: Any) -> DecodedTree:
    payload = unwrap(Node(value))
    if not payload.is_list():
        raise UnrecognizedShape("payload is not an array", snapshot(payload.value))

    revision = payload.at(0, 0).as_int()
    if revision not in KNOWN_REVISIONS:
        raise UnrecognizedShape(f"unknown revision {payload.at(0, 0).value!r}", snapshot(payload.value))

    tree = DecodedTree(revision=revision)
    tree.language = payload.at(2).as_str()
    tree.scale = _parse_scale(payload.at(3), tree)
    tree.translation = _parse_translation(payload.at(4))

    text_root = payload.at(1)
    if text_root.missing:
        return tree
    entries = text_root.as_list()
    if entries is None:
        tree.notes.append(f"text root is not an array: {snapshot(text_root.value, 64)}")
        return tree

    walker = _Walker(tree)
    if revision == 1:
        walker.flat(entries)
    else:
        walker.paragraphs(entries)

    if tree.is_empty and tree.dropped:
        raise UnrecognizedShape("no text line could be recovered", snapshot(payload.value))
    if tree.dropped or tree.coerced:
        logger.debug("decoded with %d dropped and %d coerced nodes", tree.dropped, tree.coerced)
    return tree


def decode(raw: bytes) -> DecodedTree:
    """
    Decode a raw response body.

    Returns a tree whose ``is_empty`` is True when the service found no text.
    Raises UnrecognizedShape for trees of no known revision and
    ServiceRejection for rate-limit or session-expiry markers.
    """
    return decode_tree(parse_body(raw))
