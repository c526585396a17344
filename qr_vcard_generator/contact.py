"""Contact records and form-field validation."""

import re
from dataclasses import dataclass, fields
from urllib.parse import urlparse

from qr_vcard_generator.errors import ValidationError


EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# ASCII digits only; whitespace stays Unicode-aware like the form's rules
PHONE_RE = re.compile(r"^\+?[1-9]\d{0,15}$", re.ASCII)
_PHONE_STRIP_RE = re.compile(r"[\s\-().]")
_URL_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*$")

# Schemes that must carry a host
_HOST_SCHEMES = ("http", "https", "ftp", "ws", "wss")

MIN_NAME_LENGTH = 2

REQUIRED_FIELDS = ("full_name", "phone", "email")

# Form keys as submitted by the web form, mapped to record attributes
_FORM_KEYS = {
    "fullName": "full_name",
    "jobTitle": "job_title",
}


def normalize_phone(phone: str) -> str:
    """Strip whitespace, hyphens, parentheses and periods from a phone number."""
    return _PHONE_STRIP_RE.sub("", phone)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def is_valid_phone(phone: str) -> bool:
    return bool(PHONE_RE.match(normalize_phone(phone)))


def is_valid_url(url: str) -> bool:
    """Accept absolute URLs: http(s) with a host, or other schemes like mailto: and tel:."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if not parsed.scheme or not _URL_SCHEME_RE.match(parsed.scheme):
        return False
    if parsed.scheme.lower() in _HOST_SCHEMES:
        return bool(parsed.netloc)
    return True


@dataclass(frozen=True)
class ContactRecord:
    """A validated contact as entered in the form."""

    full_name: str
    phone: str
    email: str
    company: str | None = None
    job_title: str | None = None
    website: str | None = None
    address: str | None = None
    notes: str | None = None

    def __post_init__(self):
        # Empty optional values behave exactly like missing ones
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None and not isinstance(value, str):
                raise TypeError(f"{f.name} must be a string, got {type(value).__name__}")
            if f.name not in REQUIRED_FIELDS and value == "":
                object.__setattr__(self, f.name, None)

    @property
    def normalized_phone(self) -> str:
        return normalize_phone(self.phone)

    @classmethod
    def from_form(cls, data: dict) -> "ContactRecord":
        """Build a record from raw form data, trimming and validating every field.

        Accepts both snake_case keys and the form's camelCase keys
        (``fullName``, ``jobTitle``). Unknown keys are ignored.

        Raises:
            ValidationError: If any field is missing or malformed. All
                failing fields are reported at once in ``details["fields"]``.
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = _FORM_KEYS.get(key, key)
            if name not in known or value is None:
                continue
            values[name] = str(value).strip()

        problems = validate_fields(values)
        if problems:
            raise ValidationError(
                "Please fix the errors in the form",
                details={"fields": problems},
            )
        return cls(**values)


def validate_fields(values: dict) -> dict[str, str]:
    """Check form values and return a mapping of field name to error message."""
    problems = {}

    full_name = values.get("full_name")
    if not full_name:
        problems["full_name"] = "Full name is required"
    elif len(full_name) < MIN_NAME_LENGTH:
        problems["full_name"] = f"Name must be at least {MIN_NAME_LENGTH} characters"

    phone = values.get("phone")
    if not phone:
        problems["phone"] = "Phone number is required"
    elif not is_valid_phone(phone):
        problems["phone"] = "Please enter a valid phone number"

    email = values.get("email")
    if not email:
        problems["email"] = "Email is required"
    elif not is_valid_email(email):
        problems["email"] = "Please enter a valid email address"

    website = values.get("website")
    if website and not is_valid_url(website):
        problems["website"] = "Please enter a valid URL"

    return problems
