"""Tiered fallback from the richest vCard down to a minimal one.

Each submission walks an ordered tier list. A tier is encoded, checked
against the capacity policy and rendered; any recoverable failure moves on
to the next tier. The walk is modelled as a small state machine so that
the transition rule can be tested on its own.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from qr_vcard_generator.contact import ContactRecord
from qr_vcard_generator.errors import RECOVERABLE_ERRORS, AppError, ExhaustedError
from qr_vcard_generator.image_utils import PhotoAsset, overlay
from qr_vcard_generator.renderer import BaseRenderer, QrImage
from qr_vcard_generator.strategy import DEFAULT_POLICY, CapacityPolicy, QrRenderSpec, select_spec
from qr_vcard_generator.vcard import Tier, VCardPayload, encode

logger = logging.getLogger(__name__)


# Shown to the user when a poorer tier had to be used
DEGRADATION_REASONS = {
    Tier.NO_PHOTO: "Photo could not be embedded; contact card generated without it.",
    Tier.MINIMAL: "Only name, phone and email were kept to fit the QR code.",
}


def tiers_for(has_photo: bool) -> list[Tier]:
    """Return the ordered tier list for a submission."""
    if has_photo:
        return [Tier.FULL, Tier.NO_PHOTO, Tier.MINIMAL]
    return [Tier.NO_PHOTO, Tier.MINIMAL]


# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Attempting:
    index: int
    tier: Tier


@dataclass(frozen=True)
class Succeeded:
    tier: Tier
    image: QrImage
    payload: VCardPayload
    spec: QrRenderSpec


@dataclass(frozen=True)
class Exhausted:
    last_error: AppError


AttemptState = Attempting | Succeeded | Exhausted


def start(tiers: list[Tier]) -> Attempting:
    if not tiers:
        raise ValueError("tier list cannot be empty")
    return Attempting(0, tiers[0])


def transition(
    state: Attempting, tiers: list[Tier], outcome: Succeeded | AppError
) -> AttemptState:
    """Apply the outcome of the current attempt.

    A success is terminal. A failure moves to the next tier, or to
    ``Exhausted`` when there is none.
    """
    if not isinstance(state, Attempting):
        raise ValueError(f"cannot transition out of terminal state {state!r}")
    if isinstance(outcome, Succeeded):
        return outcome

    next_index = state.index + 1
    if next_index < len(tiers):
        return Attempting(next_index, tiers[next_index])
    return Exhausted(outcome)


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

@dataclass
class GenerationResult:
    """What a successful submission hands back to the caller."""

    image: QrImage
    tier_used: Tier
    degraded: bool
    payload: VCardPayload
    spec: QrRenderSpec
    reason: str | None = None
    logo_applied: bool = False
    attempts: list[Tier] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "image": self.image.to_data_url(),
            "tierUsed": self.tier_used.value,
            "degraded": self.degraded,
            "reason": self.reason,
            "dataSize": len(self.payload),
            "qrSettings": {
                "width": self.spec.pixel_width,
                "errorCorrection": self.spec.error_correction.value,
            },
        }


class FallbackController:
    """Runs the tier walk for one submission at a time.

    Holds no state between runs; everything a run needs is passed in.
    """

    def __init__(
        self,
        renderer: BaseRenderer,
        policy: CapacityPolicy = DEFAULT_POLICY,
        apply_logo: bool = True,
    ):
        self.renderer = renderer
        self.policy = policy
        self.apply_logo = apply_logo

    def attempt(
        self,
        contact: ContactRecord,
        tier: Tier,
        photo: PhotoAsset | None = None,
        now: datetime | None = None,
    ) -> Succeeded:
        """Encode, size-check and render a single tier.

        Raises:
            PhotoTooLargeError, PayloadTooLargeError, RenderFailureError
        """
        payload = encode(
            contact,
            tier,
            photo if tier is Tier.FULL else None,
            embed_threshold=self.policy.photo_embed_threshold,
            now=now,
        )
        spec = select_spec(len(payload), self.policy)
        image = self.renderer.render(payload.text, spec)
        return Succeeded(tier=tier, image=image, payload=payload, spec=spec)

    def run(
        self,
        contact: ContactRecord,
        photo: PhotoAsset | None = None,
        now: datetime | None = None,
    ) -> GenerationResult:
        """Generate a QR code for ``contact``, degrading as needed.

        Returns:
            The result for the first tier that rendered.

        Raises:
            ExhaustedError: If every tier failed.
        """
        tiers = tiers_for(photo is not None)
        state: AttemptState = start(tiers)
        attempted: list[Tier] = []

        while isinstance(state, Attempting):
            tier = state.tier
            attempted.append(tier)
            try:
                outcome = self.attempt(contact, tier, photo, now)
            except RECOVERABLE_ERRORS as e:
                logger.info("Tier %s failed: %s", tier.value, e.message)
                outcome = e
            state = transition(state, tiers, outcome)

        if isinstance(state, Exhausted):
            logger.warning("All QR generation strategies failed: %s", state.last_error.message)
            raise ExhaustedError(state.last_error, [t.value for t in attempted])

        degraded = state.tier is not tiers[0]
        result = GenerationResult(
            image=state.image,
            tier_used=state.tier,
            degraded=degraded,
            payload=state.payload,
            spec=state.spec,
            reason=DEGRADATION_REASONS.get(state.tier) if degraded else None,
            attempts=attempted,
        )

        if photo is not None and self.apply_logo:
            result.image, result.logo_applied = self._decorate(result.image, photo)

        logger.info(
            "QR code generated at tier %s (%d chars)%s",
            result.tier_used.value, len(result.payload),
            " with logo" if result.logo_applied else "",
        )
        return result

    def _decorate(self, image: QrImage, photo: PhotoAsset) -> tuple[QrImage, bool]:
        """Overlay the logo, keeping the plain image if that fails."""
        try:
            return overlay(image, photo), True
        except (AppError, OSError, ValueError) as e:
            logger.warning("Failed to add logo, using plain QR code: %s", e)
            return image, False
