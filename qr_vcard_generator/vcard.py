"""Encode contact records as vCard 3.0 text.

Three tiers of decreasing richness are supported so that a caller can fall
back to a smaller payload when a richer one does not fit in a QR code:

- ``FULL``: every field plus the photo embedded as base64.
- ``NO_PHOTO``: every field, no photo.
- ``MINIMAL``: name, phone and email only.
"""

import base64
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from qr_vcard_generator import PHOTO_EMBED_THRESHOLD
from qr_vcard_generator.contact import ContactRecord
from qr_vcard_generator.errors import PhotoTooLargeError
from qr_vcard_generator.image_utils import PhotoAsset

logger = logging.getLogger(__name__)

CRLF = "\r\n"


class Tier(Enum):
    """vCard encoding tiers, richest first."""
    FULL = "full"
    NO_PHOTO = "no_photo"
    MINIMAL = "minimal"


@dataclass(frozen=True)
class VCardPayload:
    """An encoded vCard and the tier that produced it."""

    text: str
    tier: Tier

    def __len__(self) -> int:
        return len(self.text)

    def __str__(self) -> str:
        return self.text

    def without_rev(self) -> str:
        """Return the text with the REV line removed, for comparisons."""
        return CRLF.join(
            line for line in self.text.split(CRLF) if not line.startswith("REV:")
        )


# Backslash goes first so the backslashes added below are not doubled
_ESCAPES = (
    ("\\", "\\\\"),
    (";", "\\;"),
    (",", "\\,"),
    ("\n", "\\n"),
    ("\r", "\\r"),
)

_UNESCAPES = {"\\": "\\", ";": ";", ",": ",", "n": "\n", "r": "\r"}
_UNESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)


def escape_value(value: str) -> str:
    """Escape a free-text value for use in a vCard property."""
    for char, replacement in _ESCAPES:
        value = value.replace(char, replacement)
    return value


def unescape_value(value: str) -> str:
    """Inverse of :func:`escape_value`. Unknown escapes are left untouched."""
    return _UNESCAPE_RE.sub(
        lambda m: _UNESCAPES.get(m.group(1), m.group(0)), value
    )


def format_rev(moment: datetime) -> str:
    """Format a timestamp as ISO-8601 UTC with millisecond precision."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def photo_property(photo: PhotoAsset, threshold: int = PHOTO_EMBED_THRESHOLD) -> str:
    """Build the PHOTO property line for a logo asset.

    Raises:
        PhotoTooLargeError: If the base64 text is longer than ``threshold``.
    """
    encoded = base64.b64encode(photo.logo_bytes).decode("ascii")
    if len(encoded) > threshold:
        raise PhotoTooLargeError(len(encoded), threshold)
    return f"PHOTO;ENCODING=b;TYPE={photo.logo_type}:{encoded}"


def encode(
    contact: ContactRecord,
    tier: Tier,
    photo: PhotoAsset | None = None,
    *,
    embed_threshold: int = PHOTO_EMBED_THRESHOLD,
    now: datetime | None = None,
) -> VCardPayload:
    """Encode a contact as a vCard 3.0 payload for the given tier.

    Args:
        contact: A validated contact record.
        tier: Which tier to produce.
        photo: Logo asset to embed. Required for ``Tier.FULL``, ignored otherwise.
        embed_threshold: Maximum base64 length for the embedded photo.
        now: Timestamp for the REV property. Defaults to the current time.

    Returns:
        The encoded payload, tagged with ``tier``.

    Raises:
        PhotoTooLargeError: If the photo cannot be embedded at ``Tier.FULL``.
        ValueError: If ``Tier.FULL`` is requested without a photo.
    """
    if tier is Tier.MINIMAL:
        lines = _minimal_lines(contact)
    else:
        if tier is Tier.FULL and photo is None:
            raise ValueError("Tier.FULL requires a photo")
        lines = _full_lines(contact)
        if tier is Tier.FULL:
            lines.append(photo_property(photo, embed_threshold))
        lines.append(f"REV:{format_rev(now or datetime.now(timezone.utc))}")

    text = CRLF.join(["BEGIN:VCARD", "VERSION:3.0", *lines, "END:VCARD"])
    logger.debug("Encoded %s vCard, %d chars", tier.value, len(text))
    return VCardPayload(text=text, tier=tier)


def _minimal_lines(contact: ContactRecord) -> list[str]:
    return [
        f"FN:{escape_value(contact.full_name)}",
        f"TEL:{contact.normalized_phone}",
        f"EMAIL:{contact.email}",
    ]


def _full_lines(contact: ContactRecord) -> list[str]:
    name = escape_value(contact.full_name)
    lines = [
        f"FN:{name}",
        f"N:{name};;;;",
        f"TEL;TYPE=CELL:{contact.normalized_phone}",
        f"EMAIL:{contact.email}",
    ]

    if contact.company or contact.job_title:
        lines.append(f"ORG:{escape_value(contact.company or '')}")
        if contact.job_title:
            lines.append(f"TITLE:{escape_value(contact.job_title)}")

    if contact.website:
        lines.append(f"URL:{contact.website}")

    if contact.address:
        lines.append(f"ADR;TYPE=HOME:;;{escape_value(contact.address)};;;;")

    if contact.notes:
        lines.append(f"NOTE:{escape_value(contact.notes)}")

    return lines
