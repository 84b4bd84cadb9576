"""Utility modules for the quote kernel."""

from quote_kernel.utils.hashing import (
    canonicalize_json,
    fingerprint_context,
    hash_payload,
)

__all__ = [
    "canonicalize_json",
    "fingerprint_context",
    "hash_payload",
]
