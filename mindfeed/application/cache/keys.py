"""Deterministic cache key derivation from structured inputs."""

import dataclasses
import enum
import hashlib
import json
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel

from ...domain.exceptions import ValidationError


def canonicalize(obj: Any) -> Any:
    """Reduce ``obj`` to plain JSON types with a stable ordering.

    Pydantic models are dumped in JSON mode, enums become their values,
    dates become ISO-8601 strings and sets are sorted, so two logically equal
    inputs canonicalize identically regardless of construction order.
    Mappings with non-string keys are rejected with :class:`ValidationError`.
    """
    if isinstance(obj, BaseModel):
        return canonicalize(obj.model_dump(mode="json"))
    if isinstance(obj, enum.Enum):
        return canonicalize(obj.value)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return canonicalize(dataclasses.asdict(obj))
    if isinstance(obj, dict):
        # 1 and "1" would serialize to the same JSON key
        for k in obj:
            if not isinstance(k, str):
                raise ValidationError(
                    "Cache key mappings must use string keys",
                    details={"key": repr(k), "key_type": type(k).__name__},
                )
        return {k: canonicalize(v) for k, v in obj.items()}
    if isinstance(obj, (set, frozenset)):
        return sorted((canonicalize(item) for item in obj), key=json_dumps_sorted)
    if isinstance(obj, (list, tuple)):
        return [canonicalize(item) for item in obj]
    return obj


def json_dumps_sorted(obj: Any) -> str:
    """JSON serialization with sorted keys for cache consistency."""
    return json.dumps(
        obj, ensure_ascii=False, separators=(",", ":"), sort_keys=True, default=str
    )


def compute_sha256_hex_from_str(text: str) -> str:
    """Compute SHA256 hash of string and return hexadecimal digest."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def create_key(structured_input: Any, namespace: str) -> str:
    """Fingerprint ``structured_input`` as ``"<namespace>:<sha256>"``.

    Field order is irrelevant; any differing field changes the digest.
    """
    payload = json_dumps_sorted(canonicalize(structured_input))
    return f"{namespace}:{compute_sha256_hex_from_str(payload)}"
