import pytest

from qr_vcard_generator.errors import RenderFailureError
from qr_vcard_generator.renderer import (
    QrcodeRenderer,
    QrImage,
    SegnoRenderer,
    get_renderer,
)
from qr_vcard_generator.strategy import ErrorCorrection, QrRenderSpec

VCARD = "BEGIN:VCARD\r\nVERSION:3.0\r\nFN:Test User\r\nTEL:+1234567890\r\nEMAIL:test@example.com\r\nEND:VCARD"


@pytest.mark.parametrize("renderer", [QrcodeRenderer(), SegnoRenderer()])
@pytest.mark.parametrize("width", [512, 768])
def test_renders_square_png_of_requested_width(renderer, width):
    image = renderer.render(VCARD, QrRenderSpec(width, ErrorCorrection.H))

    assert (image.width, image.height) == (width, width)
    assert image.png_bytes.startswith(b"\x89PNG")
    pil = image.to_pil()
    assert pil.size == (width, width)
    # Quiet zone is white
    assert pil.convert("RGB").getpixel((0, 0)) == (255, 255, 255)


@pytest.mark.parametrize("renderer", [QrcodeRenderer(), SegnoRenderer()])
def test_overflow_becomes_render_failure(renderer):
    # Byte-mode capacity at level H tops out at 1273 bytes
    payload = "x" * 3000
    with pytest.raises(RenderFailureError) as excinfo:
        renderer.render(payload, QrRenderSpec(1024, ErrorCorrection.H))
    assert excinfo.value.original_exception is not None


def test_empty_payload_is_rejected():
    with pytest.raises(RenderFailureError):
        QrcodeRenderer().render("   ", QrRenderSpec(512, ErrorCorrection.H))


def test_get_renderer():
    assert isinstance(get_renderer(), QrcodeRenderer)
    assert isinstance(get_renderer("segno"), SegnoRenderer)
    with pytest.raises(ValueError):
        get_renderer("canvas")


def test_qr_image_data_url_and_save(tmp_path):
    image = QrcodeRenderer().render(VCARD, QrRenderSpec(512, ErrorCorrection.Q))

    assert image.to_data_url().startswith("data:image/png;base64,")
    path = image.save(str(tmp_path / "qr.png"))
    with open(path, "rb") as fh:
        assert fh.read() == image.png_bytes


def test_from_pil_roundtrip():
    from PIL import Image

    img = Image.new("RGB", (10, 20), "black")
    image = QrImage.from_pil(img)
    assert (image.width, image.height) == (10, 20)
    assert image.to_pil().getpixel((5, 5)) == (0, 0, 0)
