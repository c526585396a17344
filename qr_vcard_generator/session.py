"""Form state for one user: the current photo and the last generated card."""

import logging
import threading

from qr_vcard_generator.contact import ContactRecord
from qr_vcard_generator.fallback import FallbackController, GenerationResult
from qr_vcard_generator.image_utils import PhotoAsset, load_photo

logger = logging.getLogger(__name__)


class FormSession:
    """Holds the mutable photo slot and serializes submissions.

    A submission made while another one is running waits for it to finish,
    so two attempt chains never read the photo slot at the same time.
    """

    def __init__(self, controller: FallbackController):
        self.controller = controller
        self._photo: PhotoAsset | None = None
        self._last_vcard: str | None = None
        self._lock = threading.Lock()

    @property
    def photo(self) -> PhotoAsset | None:
        return self._photo

    @property
    def last_vcard(self) -> str | None:
        """Text of the most recently generated vCard, for copying."""
        return self._last_vcard

    def upload_photo(self, source: str | bytes, **kwargs) -> PhotoAsset:
        """Load a photo and make it the current one, replacing any previous photo."""
        photo = load_photo(source, **kwargs)
        self.set_photo(photo)
        return photo

    def set_photo(self, photo: PhotoAsset) -> None:
        with self._lock:
            self._photo = photo
        logger.debug("Photo set (%dpx logo)", photo.logo_size)

    def remove_photo(self) -> None:
        with self._lock:
            self._photo = None

    def clear(self) -> None:
        """Reset the form: drop the photo and the last vCard."""
        with self._lock:
            self._photo = None
            self._last_vcard = None

    def submit(self, form_data: dict | ContactRecord) -> GenerationResult:
        """Validate the form and run a fresh attempt chain.

        Raises:
            ValidationError: If the form data is invalid. Nothing is encoded.
            ExhaustedError: If no tier could be rendered.
        """
        if isinstance(form_data, ContactRecord):
            contact = form_data
        else:
            contact = ContactRecord.from_form(form_data)

        with self._lock:
            result = self.controller.run(contact, self._photo)
            self._last_vcard = result.payload.text
        return result
