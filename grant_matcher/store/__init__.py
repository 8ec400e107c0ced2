"""Profile lookup and opportunity snapshots."""

from grant_matcher.store.memory import InMemoryProfileStore, ProfileLookup
from grant_matcher.store.snapshot import load_opportunity_snapshot, write_opportunity_snapshot

__all__ = [
    "InMemoryProfileStore",
    "ProfileLookup",
    "load_opportunity_snapshot",
    "write_opportunity_snapshot",
]
