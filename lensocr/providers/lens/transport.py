"""requests-based transport for the upload endpoint."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

import requests

from lensocr.errors import TransportError, TransportErrorKind
from lensocr.providers.base import TransportResponse


def _response_headers(r: requests.Response) -> dict[str, object]:
    """Flatten headers, keeping every Set-Cookie seen across redirects as a list."""
    headers: dict[str, object] = {k: v for k, v in r.headers.items() if k.lower() != "set-cookie"}
    cookies: list[str] = []
    for resp in [*r.history, r]:
        raw = getattr(resp.raw, "headers", None)
        if raw is not None and hasattr(raw, "getlist"):
            cookies.extend(raw.getlist("Set-Cookie"))
        elif "Set-Cookie" in resp.headers:
            cookies.append(resp.headers["Set-Cookie"])
    if cookies:
        headers["Set-Cookie"] = cookies
    return headers


@dataclass
class RequestsTransport:
    """
    Plain ``requests.post`` per call.

    No cookie jar is kept here; cookies travel in the headers built from the
    client's SessionState.
    """

    allow_redirects: bool = True

    def post(
        self, url: str, *, body: bytes, headers: Mapping[str, str], timeout: float
    ) -> TransportResponse:
        try:
            r = requests.post(
                url,
                data=body,
                headers=dict(headers),
                timeout=timeout,
                allow_redirects=self.allow_redirects,
            )
        except requests.Timeout as ex:
            raise TransportError(TransportErrorKind.TIMEOUT, f"Timed out after {timeout}s: {ex}") from ex
        except requests.RequestException as ex:
            raise TransportError(TransportErrorKind.NETWORK, f"Network error: {ex}") from ex
        return TransportResponse(status=r.status_code, body=r.content, headers=_response_headers(r))
