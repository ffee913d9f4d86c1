"""Protocol client: one OCR round trip against the visual-search upload endpoint."""

from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass, field
from enum import Enum

from lensocr.constants import DEFAULT_MAX_ATTEMPTS, DEFAULT_TIMEOUT_SEC, DEFAULT_USER_AGENT, LENS_UPLOAD_ENDPOINT
from lensocr.decoder import decode
from lensocr.encoder import encode
from lensocr.errors import LensError, ProtocolError, TransportError, TransportErrorKind
from lensocr.geometry import language_code, normalize
from lensocr.providers.base import OCRModel, Transport
from lensocr.providers.lens.transport import RequestsTransport
from lensocr.retry import RetryPolicy, is_retryable, suggests_session_expiry
from lensocr.session import SessionState
from lensocr.types import ImagePayload, OcrResult, TextSegment

logger = logging.getLogger(__name__)


class CallState(str, Enum):
    IDLE = "idle"
    ENCODING = "encoding"
    AWAITING_TRANSPORT = "awaiting_transport"
    DECODING = "decoding"
    NORMALIZING = "normalizing"
    SUCCESS = "success"
    FAILED = "failed"


def _env_number(name: str, default: float, cast: type = int) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        value = 0
    if not value > 0:
        logger.warning("ignoring %s=%r, expected a positive %s; using %s", name, raw, cast.__name__, default)
        return default
    return value


def join_text(segments: list[TextSegment]) -> str:
    """Concatenate segments with the break the service attached to each line."""
    return "".join(seg.text + seg.line_break for seg in segments).strip()


@dataclass
class LensClient(OCRModel):
    """
    OCR through the browser visual-search upload endpoint.

    Settings fall back to the environment:
        LENS_ENDPOINT, LENS_USER_AGENT, LENS_TIMEOUT_SEC, LENS_MAX_ATTEMPTS, LENS_LANGUAGE

    One instance owns one SessionState and handles one request at a time.
    Use a pool of instances (see ``lensocr.pool``) for concurrent work.

    Example:
        client = LensClient()
        result = client.submit(load_image("receipt.jpg"), language_hint="en")
        print(result.full_text)
    """

    endpoint: str = ""
    user_agent: str = ""
    timeout_sec: float = 0
    language: str | None = None
    retry: RetryPolicy | None = None
    transport: Transport | None = None
    session: SessionState = field(default_factory=SessionState)
    state: CallState = field(default=CallState.IDLE, init=False)
    _busy: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Fill unset settings from the environment."""
        if not self.endpoint:
            self.endpoint = os.environ.get("LENS_ENDPOINT", LENS_UPLOAD_ENDPOINT)
        if not self.user_agent:
            self.user_agent = os.environ.get("LENS_USER_AGENT", DEFAULT_USER_AGENT)
        if not self.timeout_sec:
            self.timeout_sec = _env_number("LENS_TIMEOUT_SEC", DEFAULT_TIMEOUT_SEC, float)
        if self.language is None:
            self.language = os.environ.get("LENS_LANGUAGE") or None
        if self.retry is None:
            self.retry = RetryPolicy(max_attempts=int(_env_number("LENS_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)))
        if self.transport is None:
            self.transport = RequestsTransport()

    def _enter(self, state: CallState) -> None:
        logger.debug("%s -> %s", self.state.value, state.value)
        self.state = state

    def submit(self, image: ImagePayload, language_hint: str | None = None) -> OcrResult:
        """
        Run one OCR round trip, retrying transient failures. Raises ProtocolError.

        A second call while one is in flight, from any thread, raises RuntimeError.
        """
        if not self._busy.acquire(blocking=False):
            raise RuntimeError("LensClient already has a request in flight; use one client per caller")
        hint = language_hint or self.language
        policy = self.retry
        try:
            attempt = 1
            while True:
                logger.debug("attempt %d/%d (sequence=%d)", attempt, policy.max_attempts, self.session.sequence_id)
                try:
                    return self._round_trip(image, hint)
                except LensError as ex:
                    self._enter(CallState.FAILED)
                    error = ProtocolError.from_exception(ex, attempt)
                    if not is_retryable(error) or attempt >= policy.max_attempts:
                        logger.warning("OCR failed after %d attempt(s): %s", attempt, error)
                        raise error from ex
                    if suggests_session_expiry(error):
                        self.session.expire()
                    self.session.refresh({})
                    delay = policy.backoff(attempt)
                    logger.info("attempt %d failed (%s); retrying in %.2fs", attempt, error, delay)
                    time.sleep(delay)
                    attempt += 1
        finally:
            self.state = CallState.IDLE
            self._busy.release()

    def _round_trip(self, image: ImagePayload, hint: str | None) -> OcrResult:
        self._enter(CallState.ENCODING)
        request = encode(image, self.session, hint, user_agent=self.user_agent)

        self._enter(CallState.AWAITING_TRANSPORT)
        response = self.transport.post(
            self.endpoint, body=request.body, headers=request.headers, timeout=self.timeout_sec
        )
        # Session bookkeeping only once the transport has returned.
        self.session.next_sequence()
        self.session.refresh(response.headers)
        if not response.ok:
            raise TransportError(
                TransportErrorKind.HTTP_STATUS,
                f"Server returned {response.status}",
                status_code=response.status,
            )

        self._enter(CallState.DECODING)
        tree = decode(response.body)
        if tree.dropped or tree.coerced:
            logger.info(
                "partial decode: %d node(s) dropped, %d leaf(s) coerced (%s)",
                tree.dropped,
                tree.coerced,
                "; ".join(tree.notes[:5]),
            )

        self._enter(CallState.NORMALIZING)
        size = (image.width, image.height)
        segments = normalize(tree, size)
        result = OcrResult(
            full_text=join_text(segments),
            segments=tuple(segments),
            source_image_size=size,
            language=language_code(tree.language),
            translation=tree.translation,
        )
        self._enter(CallState.SUCCESS)
        return result
