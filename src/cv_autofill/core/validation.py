"""Format checks shared by the merge engine and the profile mapper."""

import re
from urllib.parse import urlparse

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^\+?[\d\s\-()]{10,}$")
_WHITESPACE_RE = re.compile(r"\s+")


def is_valid_email(value: str) -> bool:
    return bool(value) and _EMAIL_RE.match(value) is not None


def is_valid_phone(value: str) -> bool:
    if not value:
        return False
    return _PHONE_RE.match(value.replace(" ", "")) is not None


def is_valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme) and bool(parsed.netloc or parsed.path)


def clean_text(value: str) -> str:
    """Trim and collapse internal whitespace."""
    return _WHITESPACE_RE.sub(" ", value.strip())


def normalize_phone(value: str) -> str:
    """Format 10 and 11 digit North American numbers; otherwise keep digits and '+'."""
    cleaned = re.sub(r"[^\d+]", "", value)
    if len(cleaned) == 10:
        return f"({cleaned[:3]}) {cleaned[3:6]}-{cleaned[6:]}"
    if len(cleaned) == 11 and cleaned.startswith("1"):
        return f"+1 ({cleaned[1:4]}) {cleaned[4:7]}-{cleaned[7:]}"
    return cleaned
