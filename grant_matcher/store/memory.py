from __future__ import annotations

import threading
from typing import Iterable, Protocol

from grant_matcher.normalize.schema import Profile


class ProfileLookup(Protocol):
    def get_by_id(self, profile_id: str) -> Profile | None: ...


class InMemoryProfileStore:
    def __init__(self, profiles: Iterable[Profile] = ()) -> None:
        self._profiles = {profile.profile_id: profile for profile in profiles}
        self._lock = threading.Lock()

    def get_by_id(self, profile_id: str) -> Profile | None:
        with self._lock:
            return self._profiles.get(profile_id)

    def upsert(self, profile: Profile) -> None:
        if not profile.profile_id:
            raise ValueError("Profile id is required.")
        with self._lock:
            self._profiles[profile.profile_id] = profile
