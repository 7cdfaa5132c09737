"""Hashing helpers for secrets that must never be stored in plain text."""

from __future__ import annotations

import hmac

from blake3 import blake3

from agricart.core.settings import settings


def keyed_hexdigest(value: str) -> str:
    """Return a BLAKE3 digest of `value` keyed by the application secret."""
    hasher = blake3(settings.secret_key.encode("utf-8"))
    hasher.update(b"\x00")
    hasher.update(value.encode("utf-8"))
    return hasher.hexdigest()


def digest_matches(value: str, expected_hexdigest: str) -> bool:
    """Compare a candidate against a stored digest in constant time."""
    return hmac.compare_digest(keyed_hexdigest(value), expected_hexdigest)
