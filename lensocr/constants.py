from __future__ import annotations

LENS_UPLOAD_ENDPOINT = "https://lens.google.com/v3/upload"
LENS_ORIGIN = "https://lens.google.com"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
DEFAULT_TIMEOUT_SEC = 60
DEFAULT_MAX_ATTEMPTS = 3

BOUNDARY_PREFIX = "----WebKitFormBoundary"

# Multipart field names, in the order the service validates them.
FIELD_IMAGE = "encoded_image"
FIELD_WIDTH = "original_width"
FIELD_HEIGHT = "original_height"
FIELD_DIMENSIONS = "processed_image_dimensions"
FIELD_MIME = "image_content_type"
FIELD_LANGUAGE = "hl"

HEADER_SEQUENCE = "X-Client-Sequence-Id"

XSSI_PREFIX = ")]}'"
RPC_ENVELOPE = "wrb.fr"
RPC_ERROR = "er"
KNOWN_REVISIONS = frozenset({1, 2})

# Markers of the anti-automation interstitial served with a 2xx status.
RATE_LIMIT_MARKERS = (b"/sorry/", b"unusual traffic")

# Coordinate conventions a response may declare in its scale field.
SCALE_NORMALIZED = 0
SCALE_PIXELS = 1
SCALE_CANVAS = 2
