"""
Defensive cursor over the weakly-typed JSON tree returned by the service.

The tree is plain parsed JSON (None, numbers, strings, lists). Every accessor
returns None instead of raising when the path is too short or the node has an
unexpected kind, so callers decide which missing fields are fatal.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Node:
    value: Any

    @property
    def missing(self) -> bool:
        return self.value is None

    def at(self, *path: int) -> "Node":
        cur = self.value
        for idx in path:
            if not isinstance(cur, list) or not -len(cur) <= idx < len(cur):
                return Node(None)
            cur = cur[idx]
        return Node(cur)

    def is_list(self) -> bool:
        return isinstance(self.value, list)

    def as_list(self) -> list["Node"] | None:
        if not isinstance(self.value, list):
            return None
        return [Node(v) for v in self.value]

    def as_str(self) -> str | None:
        if isinstance(self.value, str):
            return self.value
        return None

    def as_text(self) -> str | None:
        """Like ``as_str`` but coerces numbers, which some revisions emit for digit-only text."""
        if isinstance(self.value, str):
            return self.value
        if isinstance(self.value, (int, float)) and not isinstance(self.value, bool):
            return str(self.value)
        return None

    def as_float(self) -> float | None:
        v = self.value
        if isinstance(v, bool):
            return None
        if isinstance(v, (int, float)):
            f = float(v)
        elif isinstance(v, str):
            try:
                f = float(v)
            except ValueError:
                return None
        else:
            return None
        return f if math.isfinite(f) else None

    def as_int(self) -> int | None:
        f = self.as_float()
        if f is None or f != int(f):
            return None
        return int(f)


def snapshot(value: Any, limit: int = 512) -> str:
    """Bounded textual prefix of a tree, for diagnostics."""
    text = repr(value)
    return text if len(text) <= limit else text[:limit] + "..."
