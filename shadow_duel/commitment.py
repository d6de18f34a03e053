"""
Hash commitment scheme.

A party commits to an allocation by publishing sha256 over the canonical
form of (allocation, secret). The allocation stays hidden until the secret
is disclosed at reveal time.
"""

import hashlib
import hmac
import re
import secrets
from collections.abc import Sequence

COMMITMENT_VERSION = "shadow-duel/v1"
SECRET_BYTES = 32
COMMITMENT_LENGTH = 64

_HEX_DIGEST = re.compile(r"^[0-9a-f]{64}$")


def generate_secret() -> str:
    """Return a fresh 256-bit secret as 64 lowercase hex characters."""
    return secrets.token_hex(SECRET_BYTES)


def canonical_form(allocation: Sequence[int], secret: str) -> bytes:
    """
    Serialize (allocation, secret) unambiguously.

    Layout: version | comma-joined decimal powers | secret. Allocation
    entries never contain "|" or ",", so the split points are fixed.
    """
    if not isinstance(secret, str) or not secret:
        raise ValueError("secret must be a non-empty string")
    powers = ",".join(str(int(v)) for v in allocation)
    return f"{COMMITMENT_VERSION}|{powers}|{secret}".encode("utf-8")


def commit(allocation: Sequence[int], secret: str) -> str:
    """Return the hex sha256 commitment for (allocation, secret)."""
    return hashlib.sha256(canonical_form(allocation, secret)).hexdigest()


def verify(allocation: Sequence[int], secret: str, commitment: str) -> bool:
    """Recompute the commitment and compare for exact equality."""
    if not is_well_formed(commitment):
        return False
    try:
        expected = commit(allocation, secret)
    except ValueError:
        return False
    return hmac.compare_digest(expected, commitment)


def is_well_formed(commitment: object) -> bool:
    """True if the value looks like a commitment produced by commit()."""
    return isinstance(commitment, str) and bool(_HEX_DIGEST.match(commitment))
