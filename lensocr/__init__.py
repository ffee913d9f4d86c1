"""
lensocr - OCR through a browser visual-search service's private upload protocol.

The package encodes an image into the multipart request the service expects,
decodes its positional nested-array response defensively, and normalizes the
returned geometry into unit-square polygons in natural reading order.

Modules:
    cli: Command-line interface
    decoder: Response tree decoding
    encoder: Multipart request encoding
    geometry: Coordinate normalization and canonical polygons
    image_io: Image loading into upload payloads
    layout_order: Band-based reading order
    pool: Concurrent OCR over independent clients
    providers: Protocol client and transport
    retry: Retry policy
    session: Session cookie and sequence bookkeeping
"""

from lensocr.errors import (
    DecodeError,
    DimensionMismatch,
    EncodeError,
    LensError,
    ProtocolError,
    ProtocolErrorKind,
    TransportError,
    TransportErrorKind,
    UnrecognizedShape,
)
from lensocr.image_io import load_image
from lensocr.pool import LensClientPool
from lensocr.providers.lens import LensClient
from lensocr.session import SessionState
from lensocr.types import ImagePayload, OcrResult, TextSegment, Word

__version__ = "0.1.0"

__all__ = [
    "DecodeError",
    "DimensionMismatch",
    "EncodeError",
    "ImagePayload",
    "LensClient",
    "LensClientPool",
    "LensError",
    "OcrResult",
    "ProtocolError",
    "ProtocolErrorKind",
    "SessionState",
    "TextSegment",
    "TransportError",
    "TransportErrorKind",
    "UnrecognizedShape",
    "Word",
    "load_image",
]
