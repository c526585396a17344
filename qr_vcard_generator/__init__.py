"""QR vCard Generator — contact cards as scannable QR codes."""

__version__ = "1.0.0"

# Shared constants
MAX_PAYLOAD_LENGTH = 6000  # Hard ceiling before any render is attempted
PHOTO_EMBED_THRESHOLD = 3000  # Max base64 chars for an embedded PHOTO property
LOGO_SIZE = 120  # Square logo side used for embedding and overlay
PREVIEW_SIZE = 150  # Square preview side, display only
LOGO_PADDING = 6  # White ring around the overlaid logo
MAX_UPLOAD_BYTES = 2 * 1024 * 1024
