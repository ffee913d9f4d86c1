"""Visual-search upload endpoint provider."""

from lensocr.providers.lens.client import CallState, LensClient
from lensocr.providers.lens.transport import RequestsTransport

__all__ = ["CallState", "LensClient", "RequestsTransport"]
