"""Password hashing, session token signing and audit metadata canonicalization."""

from __future__ import annotations

import base64
import hmac
import os
import re
from typing import Any

import orjson
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC


# Password Hashing

PASSWORD_SCHEME = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 390_000
_SALT_BYTES = 16

MIN_PASSWORD_LENGTH = 12
MAX_PASSWORD_LENGTH = 128
PASSWORD_POLICY_MESSAGE = (
    "Password must be 12-128 chars and include upper, lower, number, and symbol."
)


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password.encode("utf-8"))


def hash_password(password: str, iterations: int = DEFAULT_ITERATIONS) -> str:
    """
    Hash a password for storage.

    Returns:
        ``pbkdf2_sha256$<iterations>$<salt>$<digest>`` with urlsafe-base64 parts.
    """
    salt = os.urandom(_SALT_BYTES)
    digest = _derive(password, salt, iterations)
    return "$".join(
        (
            PASSWORD_SCHEME,
            str(iterations),
            base64.urlsafe_b64encode(salt).decode(),
            base64.urlsafe_b64encode(digest).decode(),
        )
    )


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison of a candidate password against a stored hash."""
    try:
        scheme, iterations, salt_b64, digest_b64 = password_hash.split("$", 3)
        if scheme != PASSWORD_SCHEME:
            return False
        salt = base64.urlsafe_b64decode(salt_b64)
        expected = base64.urlsafe_b64decode(digest_b64)
        candidate = _derive(password, salt, int(iterations))
    except ValueError:
        return False
    return hmac.compare_digest(candidate, expected)


def is_strong_password(password: str) -> bool:
    if len(password) < MIN_PASSWORD_LENGTH or len(password) > MAX_PASSWORD_LENGTH:
        return False

    has_lower = re.search(r"[a-z]", password) is not None
    has_upper = re.search(r"[A-Z]", password) is not None
    has_number = re.search(r"\d", password) is not None
    has_symbol = re.search(r"[^A-Za-z0-9]", password) is not None
    return has_lower and has_upper and has_number and has_symbol


# Session Tokens

_FERNET_KEYS: dict[str, bytes] = {}


def _get_session_key(secret: str) -> bytes:
    """Derive a Fernet key from the configured session secret."""
    key = _FERNET_KEYS.get(secret)
    if key is not None:
        return key

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=b"promptbank-session",
        iterations=100_000,
    )
    key = base64.urlsafe_b64encode(kdf.derive(secret.encode()))
    _FERNET_KEYS[secret] = key
    return key


def sign_session(payload: dict[str, Any], secret: str, issued_at: int | None = None) -> str:
    """Encrypt and sign a session payload. The issue time is embedded in the token."""
    f = Fernet(_get_session_key(secret))
    data = orjson.dumps(payload)
    if issued_at is None:
        return f.encrypt(data).decode()
    return f.encrypt_at_time(data, issued_at).decode()


def load_session(
    token: str, secret: str, max_age_seconds: int, now: int | None = None
) -> tuple[dict[str, Any], int] | None:
    """
    Verify a session token.

    Returns:
        (payload, issued_at) or None when the token is forged, malformed or
        older than ``max_age_seconds``.
    """
    f = Fernet(_get_session_key(secret))
    try:
        if now is None:
            data = f.decrypt(token.encode(), ttl=max_age_seconds)
        else:
            data = f.decrypt_at_time(token.encode(), ttl=max_age_seconds, current_time=now)
        issued_at = f.extract_timestamp(token.encode())
        payload = orjson.loads(data)
    except (InvalidToken, orjson.JSONDecodeError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    return payload, issued_at


# Audit Metadata

TRUNCATION_MARKER = "...[truncated]"


def sanitize_audit_metadata(metadata: dict[str, Any] | None, max_length: int = 2000) -> str | None:
    """Serialize audit metadata with sorted keys, truncating oversized blobs."""
    if not metadata:
        return None

    serialized = orjson.dumps(
        {key: metadata[key] for key in sorted(metadata)},
        option=orjson.OPT_SORT_KEYS,
        default=str,
    ).decode()
    if len(serialized) <= max_length:
        return serialized
    return f"{serialized[:max_length]}{TRUNCATION_MARKER}"
