from __future__ import annotations

import math
import os
from dataclasses import dataclass, fields
from typing import Any, Mapping

ENV_PREFIX = "GRANT_MATCHER_"


@dataclass(frozen=True, slots=True)
class MatcherSettings:
    search_base_url: str = "http://localhost:8081/api/v1"
    search_api_key: str = ""
    search_timeout_seconds: float = 20.0
    search_max_retries: int = 3
    candidate_pool_size: int = 100
    default_min_similarity: float = 0.6
    result_ttl_seconds: float = 900.0
    result_sliding_seconds: float = 300.0
    cache_max_entries: int = 1024
    redis_url: str | None = None
    max_requests_per_minute: int = 60
    max_requests_per_5_minutes: int = 200

    def __post_init__(self) -> None:
        for field_name in (
            "search_timeout_seconds",
            "result_ttl_seconds",
            "result_sliding_seconds",
        ):
            value = float(getattr(self, field_name))
            if not math.isfinite(value) or value <= 0.0:
                raise ValueError(f"Setting '{field_name}' must be a positive number.")
        for field_name in (
            "candidate_pool_size",
            "cache_max_entries",
            "max_requests_per_minute",
            "max_requests_per_5_minutes",
        ):
            if int(getattr(self, field_name)) < 1:
                raise ValueError(f"Setting '{field_name}' must be at least 1.")
        if self.search_max_retries < 0:
            raise ValueError("Setting 'search_max_retries' must not be negative.")
        if not 0.0 <= self.default_min_similarity <= 1.0:
            raise ValueError("Setting 'default_min_similarity' must be between 0.0 and 1.0.")
        if self.result_sliding_seconds > self.result_ttl_seconds:
            raise ValueError("Sliding expiry cannot exceed the absolute result TTL.")

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> MatcherSettings:
        values = payload or {}
        kwargs: dict[str, Any] = {}
        for field_def in fields(cls):
            if field_def.name not in values:
                continue
            raw = values[field_def.name]
            kwargs[field_def.name] = _coerce(field_def.name, raw, getattr(cls(), field_def.name))
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> MatcherSettings:
        env = os.environ if environ is None else environ
        payload = {
            field_def.name: env[ENV_PREFIX + field_def.name.upper()]
            for field_def in fields(cls)
            if ENV_PREFIX + field_def.name.upper() in env
        }
        return cls.from_mapping(payload)


def _coerce(name: str, raw: Any, default: Any) -> Any:
    if raw is None:
        return None
    if isinstance(default, bool):
        return str(raw).strip().lower() in {"1", "true", "yes", "on"}
    try:
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Setting '{name}' has an invalid value: {raw!r}") from exc
    text = str(raw).strip()
    return text or None if name == "redis_url" else text
