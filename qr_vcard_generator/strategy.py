"""Pick QR render parameters from the payload length."""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum

from qr_vcard_generator import MAX_PAYLOAD_LENGTH, PHOTO_EMBED_THRESHOLD
from qr_vcard_generator.errors import PayloadTooLargeError

logger = logging.getLogger(__name__)


class ErrorCorrection(Enum):
    """QR error-correction levels, weakest first."""
    L = "L"  # ~7% recovery
    M = "M"  # ~15%
    Q = "Q"  # ~25%
    H = "H"  # ~30%

    @property
    def strength(self) -> int:
        return _STRENGTH[self]


_STRENGTH = {
    ErrorCorrection.L: 0,
    ErrorCorrection.M: 1,
    ErrorCorrection.Q: 2,
    ErrorCorrection.H: 3,
}


@dataclass(frozen=True)
class QrRenderSpec:
    """Pixel width and error-correction level for one render."""

    pixel_width: int
    error_correction: ErrorCorrection


@dataclass(frozen=True)
class Band:
    """Render spec applied to payloads up to ``max_length`` characters."""

    max_length: int
    spec: QrRenderSpec


DEFAULT_BANDS = (
    Band(1000, QrRenderSpec(512, ErrorCorrection.H)),
    Band(2000, QrRenderSpec(512, ErrorCorrection.Q)),
    Band(3000, QrRenderSpec(768, ErrorCorrection.M)),
    Band(MAX_PAYLOAD_LENGTH, QrRenderSpec(1024, ErrorCorrection.L)),
)


@dataclass(frozen=True)
class CapacityPolicy:
    """Capacity thresholds and length bands.

    These are empirical limits rather than values derived from the QR
    capacity table, so they can be overridden per deployment.
    """

    max_payload_length: int = MAX_PAYLOAD_LENGTH
    photo_embed_threshold: int = PHOTO_EMBED_THRESHOLD
    bands: tuple[Band, ...] = field(default=DEFAULT_BANDS)

    def __post_init__(self):
        if self.max_payload_length <= 0:
            raise ValueError("max_payload_length must be positive")
        if self.photo_embed_threshold < 0:
            raise ValueError("photo_embed_threshold must not be negative")
        if not self.bands:
            raise ValueError("at least one band is required")

        previous = None
        for band in self.bands:
            if previous is not None:
                if band.max_length <= previous.max_length:
                    raise ValueError("bands must be sorted by increasing max_length")
                if band.spec.error_correction.strength > previous.spec.error_correction.strength:
                    raise ValueError(
                        "a longer band cannot use stronger error correction than a shorter one"
                    )
            previous = band

    @classmethod
    def from_env(cls, environ=None) -> "CapacityPolicy":
        """Build a policy, honouring QR_VCARD_MAX_PAYLOAD and
        QR_VCARD_PHOTO_EMBED_THRESHOLD overrides."""
        environ = os.environ if environ is None else environ
        kwargs = {}
        for var, name in (
            ("QR_VCARD_MAX_PAYLOAD", "max_payload_length"),
            ("QR_VCARD_PHOTO_EMBED_THRESHOLD", "photo_embed_threshold"),
        ):
            raw = environ.get(var)
            if raw:
                try:
                    kwargs[name] = int(raw)
                except ValueError:
                    raise ValueError(f"{var} must be an integer, got {raw!r}") from None
        return cls(**kwargs)


DEFAULT_POLICY = CapacityPolicy()


def select_spec(payload_length: int, policy: CapacityPolicy = DEFAULT_POLICY) -> QrRenderSpec:
    """Choose render parameters for a payload of ``payload_length`` characters.

    Larger payloads get wider images and weaker error correction. The
    ceiling is checked first so no render is attempted for data that
    cannot fit.

    Raises:
        PayloadTooLargeError: If the payload exceeds the policy ceiling.
    """
    if payload_length > policy.max_payload_length:
        logger.info(
            "Payload of %d chars exceeds ceiling of %d",
            payload_length, policy.max_payload_length,
        )
        raise PayloadTooLargeError(payload_length, policy.max_payload_length)

    for band in policy.bands:
        if payload_length <= band.max_length:
            spec = band.spec
            break
    else:
        # Past the last band edge but under the ceiling
        spec = policy.bands[-1].spec

    logger.info(
        "Using QR settings: %dpx, error correction: %s",
        spec.pixel_width, spec.error_correction.value,
    )
    return spec
