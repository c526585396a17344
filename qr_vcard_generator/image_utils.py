"""Photo handling: upload checks, square logos and the QR center overlay."""

import io
import os
import re
from dataclasses import dataclass

from PIL import Image, ImageChops, ImageDraw

from qr_vcard_generator import LOGO_PADDING, LOGO_SIZE, MAX_UPLOAD_BYTES, PREVIEW_SIZE
from qr_vcard_generator.errors import ImageDecodeError, ValidationError
from qr_vcard_generator.renderer import QrImage


ALLOWED_IMAGE_TYPES = ("JPEG", "PNG", "GIF", "WEBP")

# Largest share of the QR width the overlaid logo may cover
MAX_LOGO_FRACTION = 0.2


@dataclass(frozen=True)
class PhotoAsset:
    """A contact photo prepared for the QR code.

    ``logo_bytes`` is what gets embedded in the vCard (FULL tier) and drawn
    over the QR code. ``preview_bytes`` is a larger copy meant for display
    only and is never embedded.
    """

    logo: Image.Image
    logo_bytes: bytes
    logo_type: str
    preview_bytes: bytes

    @property
    def logo_size(self) -> int:
        return self.logo.width


def load_image(source: str | bytes, max_bytes: int = MAX_UPLOAD_BYTES) -> Image.Image:
    """Load and validate an uploaded image.

    Args:
        source: Path to an image file, or the raw file bytes.
        max_bytes: Largest accepted file size.

    Returns:
        The decoded image in RGBA mode.

    Raises:
        FileNotFoundError: If ``source`` is a path that doesn't exist.
        ValidationError: If the file is too large or not JPEG, PNG, GIF or WebP.
        ImageDecodeError: If the data cannot be decoded as an image.
    """
    if isinstance(source, str):
        if not os.path.exists(source):
            raise FileNotFoundError(f"Image not found: {source}")
        with open(source, "rb") as fh:
            data = fh.read()
    else:
        data = bytes(source)

    if len(data) > max_bytes:
        raise ValidationError(
            f"Image size should be less than {max_bytes // (1024 * 1024)}MB",
            details={"size": len(data), "max_bytes": max_bytes},
        )

    try:
        img = Image.open(io.BytesIO(data))
        image_format = img.format
        img.load()
    except (OSError, SyntaxError) as e:
        raise ImageDecodeError(f"Could not open image: {e}", original_exception=e)

    if image_format not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            "Please select a valid image file (JPG, PNG, GIF, WebP)",
            details={"format": image_format},
        )

    return img.convert("RGBA")


def _center_crop_square(img: Image.Image) -> Image.Image:
    """Center-crop an image to a square, preserving aspect ratio.

    Takes the largest centered square region from the image.
    """
    width, height = img.size
    if width == height:
        return img

    side = min(width, height)
    left = (width - side) // 2
    top = (height - side) // 2
    return img.crop((left, top, left + side, top + side))


def _encode(img: Image.Image, image_format: str, quality: int) -> bytes:
    buffer = io.BytesIO()
    if image_format == "JPEG":
        img.convert("RGB").save(buffer, format="JPEG", quality=quality)
    else:
        img.save(buffer, format=image_format)
    return buffer.getvalue()


def make_logo(
    source: Image.Image,
    logo_size: int = LOGO_SIZE,
    preview_size: int = PREVIEW_SIZE,
    logo_format: str = "PNG",
    quality: int = 90,
) -> PhotoAsset:
    """Turn an image into a square logo plus a display preview.

    Both are center-cropped to a square first, so the photo is never
    stretched.

    Args:
        source: Decoded source image.
        logo_size: Side of the logo in pixels.
        preview_size: Side of the preview in pixels.
        logo_format: "PNG" or "JPEG" encoding for the logo bytes.
        quality: JPEG quality, used when ``logo_format`` is "JPEG".
    """
    logo_format = logo_format.upper()
    if logo_format not in ("PNG", "JPEG"):
        raise ValueError(f"Unsupported logo format '{logo_format}'")

    square = _center_crop_square(source.convert("RGBA"))
    logo = square.resize((logo_size, logo_size), Image.LANCZOS)
    preview = square.resize((preview_size, preview_size), Image.LANCZOS)

    return PhotoAsset(
        logo=logo,
        logo_bytes=_encode(logo, logo_format, quality),
        logo_type=logo_format,
        preview_bytes=_encode(preview, "JPEG", 80),
    )


def load_photo(source: str | bytes, **kwargs) -> PhotoAsset:
    """Load an uploaded photo and prepare its logo. See :func:`make_logo`."""
    return make_logo(load_image(source), **kwargs)


def overlay(qr_image: QrImage, logo: PhotoAsset, padding: int = LOGO_PADDING) -> QrImage:
    """Draw a circular logo over the center of a QR image.

    A white disc slightly larger than the logo is painted first so the
    scanner sees clean contrast around it. Only pixels inside that disc
    change.

    Raises:
        ImageDecodeError: If the QR image cannot be decoded.
    """
    try:
        canvas = qr_image.to_pil().convert("RGB")
    except (OSError, SyntaxError) as e:
        raise ImageDecodeError("Failed to load QR code image", original_exception=e)

    width, height = canvas.size
    side = int(min(width * MAX_LOGO_FRACTION, logo.logo_size))
    if side <= 0:
        return qr_image

    center_x, center_y = width / 2, height / 2
    radius = side / 2 + padding
    draw = ImageDraw.Draw(canvas)
    draw.ellipse(
        (center_x - radius, center_y - radius, center_x + radius, center_y + radius),
        fill="white",
    )

    scaled = logo.logo.convert("RGBA").resize((side, side), Image.LANCZOS)
    mask = Image.new("L", (side, side), 0)
    ImageDraw.Draw(mask).ellipse((0, 0, side - 1, side - 1), fill=255)
    mask = ImageChops.multiply(mask, scaled.getchannel("A"))

    canvas.paste(scaled.convert("RGB"), ((width - side) // 2, (height - side) // 2), mask)
    return QrImage.from_pil(canvas)


def output_filename(full_name: str | None) -> str:
    """Build a download filename from the contact's name."""
    if full_name:
        sanitized = re.sub(r"[^a-zA-Z0-9\s]", "", full_name.strip())
        sanitized = re.sub(r"\s+", "-", sanitized).strip("-").lower()
        if sanitized:
            return f"{sanitized}-qr-code.png"
    return "vcard-qr-code.png"


def save_output(image: QrImage, output_path: str) -> str:
    """Write the QR image to ``output_path``, creating parent directories.

    Returns:
        The output path where the image was saved.
    """
    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    return image.save(output_path)
