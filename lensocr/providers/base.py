"""Protocols for the OCR front end and its transport collaborator."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from lensocr.types import ImagePayload, OcrResult


@dataclass(frozen=True)
class TransportResponse:
    status: int
    body: bytes = b""
    headers: Mapping[str, object] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(Protocol):
    """
    One POST per call. Network failures and timeouts are raised as
    ``TransportError``; any HTTP status, including errors, is returned.
    """

    def post(
        self, url: str, *, body: bytes, headers: Mapping[str, str], timeout: float
    ) -> TransportResponse: ...


class OCRModel(Protocol):
    def submit(self, image: "ImagePayload", language_hint: str | None = None) -> "OcrResult": ...
