"""Shared validation utilities"""

import re
from typing import Optional

# local@domain.tld: one "@", a dot in the domain part, no whitespace anywhere
EMAIL_ADDRESS_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def is_valid_email_address(value: Optional[str]) -> bool:
    """
    Check an address against the relay's simple local@domain.tld shape.

    The whole string must match, so leading/trailing whitespace (including a
    trailing newline) makes the address invalid.
    """
    if not value or not isinstance(value, str):
        return False
    return EMAIL_ADDRESS_PATTERN.fullmatch(value) is not None


def local_part(email: Optional[str]) -> Optional[str]:
    """Return the part of an address before '@', or None if there isn't one"""
    if not email:
        return None
    name = email.split("@")[0]
    return name or None
