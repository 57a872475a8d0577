"""Format checks for national IDs and Iranian mobile numbers."""

from __future__ import annotations

import re

_NATIONAL_ID = re.compile(r"[0-9]{10}")
_MOBILE = re.compile(r"09[0-9]{9}")


def validate_national_id(value: str) -> bool:
    """Return ``True`` iff ``value`` is exactly ten decimal digits."""
    return isinstance(value, str) and _NATIONAL_ID.fullmatch(value) is not None


def validate_phone_number(value: str) -> bool:
    """Return ``True`` iff ``value`` looks like ``09xxxxxxxxx``."""
    return isinstance(value, str) and _MOBILE.fullmatch(value) is not None
