"""
Deterministic hashing utilities for the audit chain.

Hashes must be reproducible across processes and databases, so payloads
are serialised to canonical JSON (sorted keys, no whitespace, normalised
Decimals) before hashing.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


def _json_serializer(obj: Any) -> Any:
    """
    Serializer for types json does not handle natively.

    Raises:
        TypeError: If the object type is not supported.
    """
    if isinstance(obj, Decimal):
        # Normalize so 7.5 and 7.50 hash identically
        return str(obj.normalize())
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: dict | list | Any) -> str:
    """Convert data to a canonical JSON string (sorted keys, no whitespace)."""
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def hash_payload(payload: dict) -> str:
    """SHA-256 hex digest of the canonical JSON form of ``payload``."""
    canonical = canonicalize_json(payload)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def hash_audit_event(
    entity_type: str,
    entity_id: str,
    action: str,
    payload_hash: str,
    prev_hash: str | None,
) -> str:
    """
    Compute the chained hash of an audit event.

    The hash covers the key fields plus the previous event's hash, so any
    retroactive edit breaks every later link.
    """
    components = [
        entity_type,
        str(entity_id),
        action,
        payload_hash,
        prev_hash or "GENESIS",
    ]
    data = "|".join(components)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()
