from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, Optional

# Same pattern the inquiry form has always used: something@something.tld
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_blank(value: Any) -> bool:
    """True for None and for strings that are empty after stripping.

    Numbers (including 0) and non-empty collections are present values.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def first_missing_field(payload: Mapping[str, Any], required: Iterable[str]) -> Optional[str]:
    """Return the first required field (in the given order) that is missing or blank."""
    for field in required:
        if is_blank(payload.get(field)):
            return field
    return None


def is_valid_email(email: Any) -> bool:
    if not isinstance(email, str):
        return False
    return EMAIL_RE.match(email) is not None


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def clean_str(value: Any) -> str | None:
    """Strip a string; blank -> None. Non-strings are converted with str()."""
    if value is None:
        return None
    s = str(value).strip()
    return s or None
