"""Salted PBKDF2 password hashing."""

import base64
import hashlib
import hmac
import os

ALGORITHM = "pbkdf2_sha256"


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def hash_password(password: str, iterations: int = 310000) -> str:
    """Return an encoded hash: algorithm$iterations$salt$digest."""
    salt = os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations, dklen=32)
    return f"{ALGORITHM}${iterations}${_b64encode(salt)}${_b64encode(digest)}"


def verify_password(password: str, encoded: str) -> bool:
    """Check a password against an encoded hash; malformed hashes never match."""
    try:
        algorithm, iterations, salt, expected = encoded.split("$", 3)
        if algorithm != ALGORITHM:
            return False
        expected_digest = _b64decode(expected)
        actual = hashlib.pbkdf2_hmac(
            "sha256",
            password.encode("utf-8"),
            _b64decode(salt),
            int(iterations),
            dklen=len(expected_digest),
        )
    except (AttributeError, ValueError):
        return False
    return hmac.compare_digest(actual, expected_digest)
