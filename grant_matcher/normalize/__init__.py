"""Canonical domain records and cache fingerprints."""

from grant_matcher.normalize.fingerprint import compute_fingerprint, search_cache_key
from grant_matcher.normalize.schema import (
    Opportunity,
    Profile,
    opportunity_from_attributes,
    profile_from_mapping,
)

__all__ = [
    "Opportunity",
    "Profile",
    "compute_fingerprint",
    "opportunity_from_attributes",
    "profile_from_mapping",
    "search_cache_key",
]
