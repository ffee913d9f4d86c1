"""Concurrent OCR over a pool of independent clients."""

from __future__ import annotations

import logging
import queue
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from lensocr.errors import ProtocolError
from lensocr.providers.lens.client import LensClient
from lensocr.types import ImagePayload, OcrResult

logger = logging.getLogger(__name__)


@dataclass
class LensClientPool:
    """
    Fixed set of LensClient instances, each with its own session.

    A client is checked out for the whole of one submit call, so no session
    is ever shared by two in-flight requests.
    """

    size: int = 4
    factory: Callable[[], LensClient] = LensClient
    _idle: "queue.Queue[LensClient]" = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.size < 1:
            raise ValueError("pool size must be at least 1")
        self._idle = queue.Queue()
        for _ in range(self.size):
            self._idle.put(self.factory())

    def submit(self, image: ImagePayload, language_hint: str | None = None) -> OcrResult:
        client = self._idle.get()
        try:
            return client.submit(image, language_hint)
        finally:
            self._idle.put(client)

    def submit_many(
        self,
        images: Sequence[ImagePayload],
        language_hint: str | None = None,
    ) -> list[OcrResult | ProtocolError]:
        """Submit images in parallel; each slot holds the result or the ProtocolError for that image."""
        results: list[OcrResult | ProtocolError | None] = [None] * len(images)
        with ThreadPoolExecutor(max_workers=self.size) as executor:
            futures = {executor.submit(self.submit, img, language_hint): i for i, img in enumerate(images)}
            for future in as_completed(futures):
                idx = futures[future]
                try:
                    results[idx] = future.result()
                except ProtocolError as ex:
                    logger.warning("image %d failed: %s", idx, ex)
                    results[idx] = ex
        return results  # type: ignore[return-value]
