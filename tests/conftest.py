from datetime import datetime, timezone

import pytest
from PIL import Image

from qr_vcard_generator.contact import ContactRecord
from qr_vcard_generator.errors import RenderFailureError
from qr_vcard_generator.image_utils import PhotoAsset
from qr_vcard_generator.renderer import BaseRenderer


FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)


class StubRenderer(BaseRenderer):
    """Returns a blank image of the requested size and records every call."""

    def __init__(self):
        self.calls = []

    def name(self) -> str:
        return "stub"

    def _render(self, payload, spec):
        self.calls.append((payload, spec))
        return Image.new("RGB", (spec.pixel_width, spec.pixel_width), "white")


class FailingRenderer(StubRenderer):
    """Always fails, like a backend that cannot fit any payload."""

    def _render(self, payload, spec):
        self.calls.append((payload, spec))
        raise RenderFailureError("backend unavailable")


def fake_photo(logo_bytes: bytes, logo_type: str = "PNG") -> PhotoAsset:
    return PhotoAsset(
        logo=Image.new("RGBA", (120, 120), (200, 30, 30, 255)),
        logo_bytes=logo_bytes,
        logo_type=logo_type,
        preview_bytes=b"",
    )


@pytest.fixture
def jane():
    return ContactRecord(full_name="Jane Doe", phone="+1 (555) 123-4567", email="jane@x.com")


@pytest.fixture
def full_contact():
    return ContactRecord(
        full_name="Jane Doe",
        phone="+1 (555) 123-4567",
        email="jane@x.com",
        company="Acme, Inc.",
        job_title="Engineer",
        website="https://example.com",
        address="1 Main St; Springfield",
        notes="Met at PyCon\nLikes QR codes",
    )


@pytest.fixture
def small_photo():
    # 300 bytes -> 400 base64 chars
    return fake_photo(b"\x89PNG" * 75)


@pytest.fixture
def huge_photo():
    # 37500 bytes -> exactly 50000 base64 chars
    return fake_photo(b"\x00" * 37500)


@pytest.fixture
def stub_renderer():
    return StubRenderer()


@pytest.fixture
def failing_renderer():
    return FailingRenderer()
