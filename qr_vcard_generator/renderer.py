"""QR render backends.

A renderer turns a payload string and a :class:`QrRenderSpec` into a PNG
image. The pipeline never encodes QR symbols itself; it only decides what to
render and how, and treats any backend failure as grounds for falling back
to a smaller payload.
"""

import base64
import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import qrcode
import segno
from PIL import Image

from qr_vcard_generator.errors import RenderFailureError
from qr_vcard_generator.strategy import ErrorCorrection, QrRenderSpec

logger = logging.getLogger(__name__)

QR_MARGIN = 2  # Quiet zone in modules


@dataclass(frozen=True)
class QrImage:
    """A rendered QR code as encoded PNG bytes."""

    png_bytes: bytes
    width: int
    height: int

    @classmethod
    def from_pil(cls, img: Image.Image) -> "QrImage":
        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return cls(png_bytes=buffer.getvalue(), width=img.width, height=img.height)

    def to_pil(self) -> Image.Image:
        img = Image.open(io.BytesIO(self.png_bytes))
        img.load()
        return img

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.png_bytes).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    def save(self, path: str) -> str:
        with open(path, "wb") as fh:
            fh.write(self.png_bytes)
        return path


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class BaseRenderer(ABC):
    """Abstract base class for QR render backends."""

    def render(self, payload: str, spec: QrRenderSpec) -> QrImage:
        """Render ``payload`` as a square PNG of ``spec.pixel_width`` pixels.

        Raises:
            RenderFailureError: If the backend cannot render the payload,
                including when the data does not fit at the requested level.
        """
        if not payload.strip():
            raise RenderFailureError("QR data cannot be empty.")
        try:
            img = self._render(payload, spec)
        except RenderFailureError:
            raise
        except Exception as e:
            logger.warning("%s failed to render %d chars: %s", self.name(), len(payload), e)
            raise RenderFailureError(
                f"Failed to generate QR code: {e}", original_exception=e
            ) from e

        img = img.convert("RGB")
        if img.size != (spec.pixel_width, spec.pixel_width):
            # Nearest keeps module edges sharp
            img = img.resize((spec.pixel_width, spec.pixel_width), Image.NEAREST)
        return QrImage.from_pil(img)

    @abstractmethod
    def _render(self, payload: str, spec: QrRenderSpec) -> Image.Image:
        ...

    @abstractmethod
    def name(self) -> str:
        ...


# ---------------------------------------------------------------------------
# python-qrcode backend
# ---------------------------------------------------------------------------

_QRCODE_LEVELS = {
    ErrorCorrection.L: qrcode.constants.ERROR_CORRECT_L,
    ErrorCorrection.M: qrcode.constants.ERROR_CORRECT_M,
    ErrorCorrection.Q: qrcode.constants.ERROR_CORRECT_Q,
    ErrorCorrection.H: qrcode.constants.ERROR_CORRECT_H,
}


class QrcodeRenderer(BaseRenderer):
    """Renders with python-qrcode, black modules on white."""

    def __init__(self, box_size: int = 10):
        self.box_size = box_size

    def name(self) -> str:
        return "python-qrcode"

    def _render(self, payload: str, spec: QrRenderSpec) -> Image.Image:
        qr = qrcode.QRCode(
            error_correction=_QRCODE_LEVELS[spec.error_correction],
            box_size=self.box_size,
            border=QR_MARGIN,
        )
        qr.add_data(payload)
        qr.make(fit=True)

        qr_image = qr.make_image(fill_color="black", back_color="white")
        return qr_image.convert("RGB")


# ---------------------------------------------------------------------------
# segno backend
# ---------------------------------------------------------------------------

class SegnoRenderer(BaseRenderer):
    """Renders with segno, scaled to the nearest whole module size."""

    def name(self) -> str:
        return "segno"

    def _render(self, payload: str, spec: QrRenderSpec) -> Image.Image:
        qr = segno.make(
            payload,
            error=spec.error_correction.value.lower(),
            boost_error=False,
            micro=False,
        )
        modules, _ = qr.symbol_size(scale=1, border=QR_MARGIN)
        scale = max(1, spec.pixel_width // modules)

        buffer = io.BytesIO()
        qr.save(buffer, kind="png", scale=scale, border=QR_MARGIN, dark="black", light="white")
        buffer.seek(0)
        img = Image.open(buffer)
        img.load()
        return img


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

RENDERERS = {
    "qrcode": QrcodeRenderer,
    "segno": SegnoRenderer,
}


def get_renderer(name: str = "qrcode") -> BaseRenderer:
    """Factory function to get a render backend.

    Args:
        name: One of "qrcode" or "segno".

    Returns:
        An initialized renderer.
    """
    if name not in RENDERERS:
        raise ValueError(f"Unknown renderer '{name}'. Choose from: {', '.join(RENDERERS)}")
    return RENDERERS[name]()
