"""Shared utilities used across the dispatch engine."""

import re
import secrets
import string

_ID_ALPHABET = string.ascii_lowercase + string.digits


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("0412 345 678")
        '0412345678'
        >>> normalize_phone("+61 (412) 345-678")
        '+61412345678'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def short_id(length: int = 9) -> str:
    """Random lowercase base36 identifier, e.g. ``'k3x9q0a2b'``."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))
