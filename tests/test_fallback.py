import pytest

from qr_vcard_generator import fallback
from qr_vcard_generator.contact import ContactRecord
from qr_vcard_generator.errors import (
    ExhaustedError,
    ImageDecodeError,
    PayloadTooLargeError,
    PhotoTooLargeError,
)
from qr_vcard_generator.fallback import (
    Attempting,
    Exhausted,
    FallbackController,
    Succeeded,
    start,
    tiers_for,
    transition,
)
from qr_vcard_generator.renderer import QrcodeRenderer
from qr_vcard_generator.strategy import ErrorCorrection
from qr_vcard_generator.vcard import Tier


def test_tier_lists():
    assert tiers_for(True) == [Tier.FULL, Tier.NO_PHOTO, Tier.MINIMAL]
    assert tiers_for(False) == [Tier.NO_PHOTO, Tier.MINIMAL]


def test_transition_moves_to_next_tier_then_exhausts():
    tiers = tiers_for(False)
    error = PayloadTooLargeError(7000, 6000)

    state = start(tiers)
    assert state == Attempting(0, Tier.NO_PHOTO)

    state = transition(state, tiers, error)
    assert state == Attempting(1, Tier.MINIMAL)

    state = transition(state, tiers, error)
    assert isinstance(state, Exhausted)
    assert state.last_error is error


def test_transition_success_is_terminal(stub_renderer, jane):
    tiers = tiers_for(False)
    succeeded = FallbackController(stub_renderer).attempt(jane, Tier.NO_PHOTO)

    state = transition(start(tiers), tiers, succeeded)
    assert state is succeeded
    with pytest.raises(ValueError):
        transition(state, tiers, succeeded)


def test_richest_tier_succeeds_without_degradation(stub_renderer, jane):
    result = FallbackController(stub_renderer).run(jane)

    assert result.tier_used is Tier.NO_PHOTO
    assert result.degraded is False
    assert result.reason is None
    assert result.attempts == [Tier.NO_PHOTO]
    assert result.spec.error_correction is ErrorCorrection.H
    assert len(stub_renderer.calls) == 1


@pytest.mark.parametrize("with_photo", [True, False])
def test_always_failing_renderer_exhausts_every_tier_once(
    failing_renderer, jane, small_photo, with_photo
):
    photo = small_photo if with_photo else None
    controller = FallbackController(failing_renderer)

    with pytest.raises(ExhaustedError) as excinfo:
        controller.run(jane, photo)

    expected = [t.value for t in tiers_for(with_photo)]
    assert excinfo.value.attempted == expected
    assert len(failing_renderer.calls) == len(expected)
    assert "backend unavailable" in excinfo.value.message
    assert excinfo.value.details["last_error"]["kind"] == "RenderFailure"


def test_oversized_photo_falls_back_to_no_photo(stub_renderer, jane, huge_photo):
    result = FallbackController(stub_renderer).run(jane, huge_photo)

    assert result.tier_used is Tier.NO_PHOTO
    assert result.degraded is True
    assert "Photo" in result.reason
    assert result.attempts == [Tier.FULL, Tier.NO_PHOTO]
    # The FULL attempt failed while encoding, so only one render happened
    assert len(stub_renderer.calls) == 1
    assert "PHOTO" not in result.payload.text


def test_oversized_card_falls_back_to_minimal(stub_renderer, small_photo):
    contact = ContactRecord(
        full_name="Jane Doe",
        phone="+1 (555) 123-4567",
        email="jane@x.com",
        company="Acme",
        job_title="Engineer",
        website="https://example.com",
        address="1 Main St",
        notes="x" * 6300,
    )
    controller = FallbackController(stub_renderer)

    for tier, photo in ((Tier.FULL, small_photo), (Tier.NO_PHOTO, None)):
        with pytest.raises(PayloadTooLargeError):
            controller.attempt(contact, tier, photo)

    result = controller.run(contact, small_photo)

    assert result.tier_used is Tier.MINIMAL
    assert result.degraded is True
    assert result.reason == fallback.DEGRADATION_REASONS[Tier.MINIMAL]
    assert result.attempts == [Tier.FULL, Tier.NO_PHOTO, Tier.MINIMAL]
    # Oversized tiers are rejected before any render
    assert len(stub_renderer.calls) == 1
    assert stub_renderer.calls[0][0] == result.payload.text


def test_logo_applied_after_success(stub_renderer, jane, huge_photo):
    result = FallbackController(stub_renderer).run(jane, huge_photo)

    assert result.logo_applied is True
    center = result.image.to_pil().getpixel((256, 256))
    assert all(abs(a - b) <= 2 for a, b in zip(center, (200, 30, 30)))


def test_logo_can_be_disabled(stub_renderer, jane, small_photo):
    result = FallbackController(stub_renderer, apply_logo=False).run(jane, small_photo)
    assert result.logo_applied is False


def test_overlay_failure_keeps_plain_image(stub_renderer, jane, small_photo, monkeypatch):
    def broken_overlay(image, photo):
        raise ImageDecodeError("Failed to load logo image")

    monkeypatch.setattr(fallback, "overlay", broken_overlay)
    result = FallbackController(stub_renderer).run(jane, small_photo)

    assert result.tier_used is Tier.FULL
    assert result.logo_applied is False
    assert result.image.to_pil().getpixel((256, 256)) == (255, 255, 255)


def test_result_to_dict(stub_renderer, jane):
    data = FallbackController(stub_renderer).run(jane).to_dict()

    assert data["image"].startswith("data:image/png;base64,")
    assert data["tierUsed"] == "no_photo"
    assert data["degraded"] is False
    assert data["qrSettings"] == {"width": 512, "errorCorrection": "H"}


def test_real_render_end_to_end(jane):
    result = FallbackController(QrcodeRenderer()).run(jane)

    assert (result.image.width, result.image.height) == (512, 512)
    assert result.tier_used is Tier.NO_PHOTO


def test_photo_too_large_is_recoverable():
    assert issubclass(PhotoTooLargeError, fallback.AppError)
    assert PhotoTooLargeError in fallback.RECOVERABLE_ERRORS
