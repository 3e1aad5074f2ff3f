"""Identifier and random-string helpers."""
from __future__ import annotations

import secrets
import string
from uuid import uuid4

# Uppercase letters and digits without look-alikes (I, O, 0, 1)
_CODE_ALPHABET = string.ascii_uppercase.replace("I", "").replace("O", "") + string.digits.replace("0", "").replace("1", "")
_NANO_ALPHABET = string.ascii_letters + string.digits


def create_id(prefix: str) -> str:
    """Return a prefixed opaque id, e.g. ``prog_3f9c...``."""
    return f"{prefix}{uuid4().hex[:24]}"


def generate_random_string(length: int = 8) -> str:
    """Random uppercase code, used for invoice prefixes."""
    return "".join(secrets.choice(_CODE_ALPHABET) for _ in range(length))


def nanoid(length: int = 7) -> str:
    return "".join(secrets.choice(_NANO_ALPHABET) for _ in range(length))
