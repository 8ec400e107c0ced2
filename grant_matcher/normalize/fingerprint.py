from __future__ import annotations

import hashlib
import json
from datetime import date, datetime
from typing import Any, Mapping

SEARCH_KEY_PREFIX = "search:grants"
_DIGEST_CHARS = 32


def _normalize_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return f"{float(value):.6f}"
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        return " ".join(value.strip().lower().split()) or None
    return str(value)


def compute_fingerprint(fields: Mapping[str, Any]) -> str:
    """Stable digest of the semantically relevant fields of a request."""

    canonical = {key: _normalize_value(fields[key]) for key in sorted(fields)}
    payload = json.dumps(canonical, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:_DIGEST_CHARS]


def search_cache_key(profile_id: str, fields: Mapping[str, Any]) -> str:
    return f"{SEARCH_KEY_PREFIX}:{profile_id}:{compute_fingerprint(fields)}"


def escape_glob(text: str) -> str:
    """Escape glob metacharacters as single-character classes.

    The ``[c]`` form is understood by both ``fnmatch`` and Redis ``SCAN MATCH``.
    """

    return "".join(f"[{char}]" if char in "[*?" else char for char in text)


def profile_search_pattern(profile_id: str) -> str:
    # The digest segment has a fixed width, so ids sharing a ":"-prefix never overlap.
    return f"{SEARCH_KEY_PREFIX}:{escape_glob(profile_id)}:" + "?" * _DIGEST_CHARS
