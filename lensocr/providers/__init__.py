"""Providers module for remote OCR services."""

from lensocr.providers.base import OCRModel, Transport, TransportResponse
from lensocr.providers.lens import LensClient, RequestsTransport

__all__ = ["LensClient", "OCRModel", "RequestsTransport", "Transport", "TransportResponse"]
