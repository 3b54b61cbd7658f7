"""
Password hashing and session token helpers for access grants.

Hashes are encoded as ``pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>``
so the iteration count can be raised later without invalidating old rows.
"""

import hashlib
import hmac
import secrets
from typing import Optional

from ..config import get_config
from ..exceptions import ErrorCode, ValidationError

HASH_ALGORITHM = "pbkdf2_sha256"


def hash_password(
    password: str, iterations: Optional[int] = None, salt: Optional[bytes] = None
) -> str:
    """Return a salted PBKDF2-SHA256 hash of ``password``."""
    if not password:
        raise ValidationError(
            "password must be a non-empty string",
            field="password",
            error_code=ErrorCode.MISSING_REQUIRED,
        )

    security = get_config().security
    iterations = iterations or security.password_hash_iterations
    salt = salt or secrets.token_bytes(security.salt_bytes)

    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{HASH_ALGORITHM}${iterations}${salt.hex()}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    """
    Check ``password`` against a stored hash in constant time.

    Malformed hashes verify as False rather than raising.
    """
    try:
        algorithm, iterations, salt_hex, digest_hex = password_hash.split("$")
        if algorithm != HASH_ALGORITHM:
            return False
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(digest_hex)
        rounds = int(iterations)
    except (AttributeError, ValueError):
        return False

    candidate = hashlib.pbkdf2_hmac("sha256", (password or "").encode("utf-8"), salt, rounds)
    return hmac.compare_digest(candidate, expected)


def generate_session_token(num_bytes: Optional[int] = None) -> str:
    """Mint an unguessable, URL-safe session token."""
    return secrets.token_urlsafe(num_bytes or get_config().security.session_token_bytes)


def token_fingerprint(token: Optional[str]) -> Optional[str]:
    """Short, non-reversible label for a token, safe to put in logs."""
    if not token:
        return None
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]
