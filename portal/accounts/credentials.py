"""Password hashing and verification.

Thin layer over Django's hasher framework; the active hasher is scrypt
(``PASSWORD_HASHERS`` in settings), so every stored form carries its own
random salt and cost parameters.
"""
import re

from django.contrib.auth.hashers import check_password, make_password

from .hashers import LegacyScryptPasswordHasher

LEGACY_HASH_RE = re.compile(r"^[0-9a-f]{128}\.[0-9a-f]{32}$")


def hash_password(plaintext: str) -> str:
    return make_password(plaintext)


def wrap_legacy_hash(stored: str) -> str:
    """Prefix a raw ``digest.salt`` value from the old portal with its hasher name."""
    if LEGACY_HASH_RE.match(stored or ""):
        return f"{LegacyScryptPasswordHasher.algorithm}${stored}"
    return stored


def verify_password(plaintext: str, stored: str, setter=None) -> bool:
    """Return True when ``plaintext`` matches ``stored``; malformed values never raise."""
    if not plaintext or not stored:
        return False
    try:
        return check_password(plaintext, wrap_legacy_hash(stored), setter=setter)
    except (ValueError, TypeError):
        return False
