"""
Deterministic hashing utilities.

Fingerprints of requests, contexts and policies are used in logs and in
determinism checks: the same inputs must always produce the same digest.
"""

import hashlib
import json
from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


def to_plain(obj: Any) -> Any:
    """
    Recursively convert dataclasses, mappings and tuples to plain
    dicts and lists. Mapping keys become strings.
    """
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_plain(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Mapping):
        return {str(to_plain(k)): to_plain(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_plain(v) for v in obj]
    if isinstance(obj, (set, frozenset)):
        return sorted(to_plain(v) for v in obj)
    return obj


def _json_serializer(obj: Any) -> Any:
    """
    Custom JSON serializer for types not natively supported.

    Raises:
        TypeError: If object type is not supported.
    """
    if isinstance(obj, Decimal):
        # Normalized so 150 and 150.00 hash the same.
        return str(obj.normalize())
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: Any) -> str:
    """
    Convert data to canonical JSON: sorted keys, no whitespace, and
    consistent handling of Decimal, date and Enum.
    """
    return json.dumps(
        to_plain(data),
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def hash_payload(payload: Any) -> str:
    """Hex-encoded SHA-256 of the canonical JSON of ``payload``."""
    canonical = canonicalize_json(payload)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def fingerprint_context(ctx: Any) -> str:
    """
    Digest of a QuoteContext (request plus accumulator).

    Two computations over the same request and policy yield the same
    fingerprint at every step.
    """
    return hash_payload({"request": ctx.request, "accumulator": ctx.accumulator})
