"""
Human-typable identifiers and one-time codes
"""

import secrets
from datetime import datetime, timezone

# No I/O/0/1 so codes survive being read aloud or copied by hand
JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
JOIN_CODE_LENGTH = 8


def generate_join_code() -> str:
    """Return a code like ``K7QM-2XWD`` from a cryptographically strong source"""
    chars = "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))
    half = JOIN_CODE_LENGTH // 2
    return f"{chars[:half]}-{chars[half:]}"


def generate_verification_code() -> str:
    """Six-digit numeric code, never starting with 0"""
    return str(100000 + secrets.randbelow(900000))


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every stored datetime uses"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
