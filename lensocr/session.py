"""Rotating session identifiers shared by consecutive requests of one client."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass


def _cookie_values(headers: Mapping[str, object]) -> list[str]:
    values: list[str] = []
    for name, value in headers.items():
        if str(name).lower() != "set-cookie" or value is None:
            continue
        if isinstance(value, str):
            values.append(value)
        elif isinstance(value, Iterable):
            values.extend(str(v) for v in value)
    return values


@dataclass
class SessionState:
    """
    Cookie and sequence counter for one logical client.

    Not thread-safe: a single client serializes its own requests, so only
    one round trip ever touches an instance at a time.
    """

    cookie: str | None = None
    sequence_id: int = 0

    def refresh(self, response_headers: Mapping[str, object]) -> None:
        """Adopt a cookie issued by the service; keep the current one otherwise."""
        pairs = []
        for raw in _cookie_values(response_headers):
            pair = raw.split(";", 1)[0].strip()
            if pair:
                pairs.append(pair)
        if pairs:
            self.cookie = "; ".join(pairs)

    def next_sequence(self) -> int:
        current = self.sequence_id
        self.sequence_id += 1
        return current

    def expire(self) -> None:
        """Forget the cookie so the next request establishes a new session."""
        self.cookie = None
