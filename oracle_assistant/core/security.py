# /oracle_assistant/core/security.py

"""
Credential and token primitives for the identity gateway.

Passwords are stored as PBKDF2-HMAC-SHA256 with a per-user random salt and an
optional server-side pepper. Session and confirmation tokens are random opaque
strings; only their SHA-256 digest is ever written to the database.
"""

import base64
import hashlib
import secrets
from typing import Optional, Tuple

DEFAULT_PASSWORD_ITERATIONS = 250_000


def _pepper_bytes(pepper: str) -> bytes:
    if not pepper.strip():
        return b""
    return hashlib.sha256(pepper.encode("utf-8")).digest()


def hash_password(
    password: str,
    *,
    pepper: str = "",
    salt: Optional[bytes] = None,
    iterations: int = DEFAULT_PASSWORD_ITERATIONS,
) -> Tuple[str, str, int]:
    """Return (salt_b64, hash_b64, iterations) for the supplied password."""
    if salt is None:
        salt = secrets.token_bytes(16)
    derived = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8") + _pepper_bytes(pepper),
        salt,
        iterations,
        dklen=32,
    )
    return (
        base64.b64encode(salt).decode("ascii"),
        base64.b64encode(derived).decode("ascii"),
        iterations,
    )


def verify_password(
    password: str,
    *,
    salt_b64: str,
    hash_b64: str,
    iterations: int,
    pepper: str = "",
) -> bool:
    """Verify ``password`` against stored PBKDF2 material."""
    try:
        salt = base64.b64decode(salt_b64.encode("ascii"))
        expected = base64.b64decode(hash_b64.encode("ascii"))
    except ValueError:
        return False

    derived = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8") + _pepper_bytes(pepper),
        salt,
        iterations,
        dklen=len(expected),
    )
    return secrets.compare_digest(derived, expected)


def new_token() -> str:
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
