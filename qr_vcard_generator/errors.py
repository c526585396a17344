"""Error types for the vCard QR pipeline.

Every error carries a numeric code, a human-readable message and a details
dict so that callers can turn it into a structured response.
"""

from typing import Any


class ErrorCodes:
    """Numeric error codes grouped by stage."""

    # Input errors (1000-1999)
    INVALID_INPUT = 1000
    IMAGE_DECODE_ERROR = 1001

    # Encoding errors (2000-2999)
    PHOTO_TOO_LARGE = 2000
    PAYLOAD_TOO_LARGE = 2001

    # Rendering errors (3000-3999)
    RENDER_FAILURE = 3000

    # Terminal errors (4000-4999)
    EXHAUSTED = 4000


class AppError(Exception):
    """Base exception for pipeline errors."""

    kind = "AppError"
    default_code = ErrorCodes.INVALID_INPUT

    def __init__(
        self,
        message: str,
        code: int | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        self.message = message
        self.code = code if code is not None else self.default_code
        self.details = details or {}
        self.original_exception = original_exception

        if original_exception is not None and "original_exception" not in self.details:
            self.details["original_exception"] = {
                "type": type(original_exception).__name__,
                "message": str(original_exception),
            }

        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert the error to a dictionary representation."""
        error = {
            "code": self.code,
            "kind": self.kind,
            "message": self.message,
        }
        if self.details:
            error["details"] = self.details
        return {"error": error}


class ValidationError(AppError):
    """Malformed contact data or photo upload. Raised before any encoding."""

    kind = "ValidationError"
    default_code = ErrorCodes.INVALID_INPUT


class ImageDecodeError(AppError):
    """An image could not be decoded."""

    kind = "ImageDecodeError"
    default_code = ErrorCodes.IMAGE_DECODE_ERROR


class PhotoTooLargeError(AppError):
    """The logo's base64 text exceeds the embed threshold."""

    kind = "PhotoTooLarge"
    default_code = ErrorCodes.PHOTO_TOO_LARGE

    def __init__(self, encoded_length: int, threshold: int):
        self.encoded_length = encoded_length
        self.threshold = threshold
        super().__init__(
            f"Photo too large to embed ({encoded_length} base64 chars, "
            f"max {threshold}).",
            details={"encoded_length": encoded_length, "threshold": threshold},
        )


class PayloadTooLargeError(AppError):
    """The vCard payload exceeds the hard QR capacity ceiling."""

    kind = "PayloadTooLarge"
    default_code = ErrorCodes.PAYLOAD_TOO_LARGE

    def __init__(self, length: int, threshold: int):
        self.length = length
        self.threshold = threshold
        super().__init__(
            "The amount of data is too big to be stored in a QR Code",
            details={"length": length, "threshold": threshold},
        )


class RenderFailureError(AppError):
    """The render backend failed to produce an image."""

    kind = "RenderFailure"
    default_code = ErrorCodes.RENDER_FAILURE


class ExhaustedError(AppError):
    """Every tier failed. Carries the last underlying error."""

    kind = "Exhausted"
    default_code = ErrorCodes.EXHAUSTED

    def __init__(self, last_error: AppError, attempted: list[str]):
        self.last_error = last_error
        self.attempted = list(attempted)
        super().__init__(
            f"Error generating QR code: {last_error.message}",
            details={
                "attempted_tiers": self.attempted,
                "last_error": last_error.to_dict()["error"],
            },
        )


# Errors the fallback controller recovers from by moving to the next tier
RECOVERABLE_ERRORS = (PhotoTooLargeError, PayloadTooLargeError, RenderFailureError)
