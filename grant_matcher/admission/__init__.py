"""Sliding-window admission control."""

from grant_matcher.admission.rate_limit import (
    AdmissionDecision,
    RateLimiter,
    RateWindow,
    resolve_client_id,
)

__all__ = ["AdmissionDecision", "RateLimiter", "RateWindow", "resolve_client_id"]
