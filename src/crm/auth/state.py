"""
Short-lived store for OAuth ``state`` values.

A state is issued when the login redirect is built and consumed exactly once
by the callback. Entries older than the configured TTL are treated as absent.
"""

import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable

from crm.config import get_settings


@dataclass(frozen=True)
class OAuthStateEntry:
    redirect_url: str | None
    created_at: float


class OAuthStateStore:
    """In-process state store keyed by the random state string."""

    def __init__(
        self,
        ttl_seconds: int = 600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, OAuthStateEntry] = {}

    def save(self, state: str, redirect_url: str | None = None) -> None:
        self._purge()
        self._entries[state] = OAuthStateEntry(redirect_url=redirect_url, created_at=self._clock())

    def consume(self, state: str | None) -> OAuthStateEntry | None:
        """Pop the entry for ``state``; None when unknown or expired."""
        if not state:
            return None
        entry = self._entries.pop(state, None)
        if entry is None or self._expired(entry):
            return None
        return entry

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, entry: OAuthStateEntry) -> bool:
        return self._clock() - entry.created_at > self._ttl

    def _purge(self) -> None:
        stale = [key for key, entry in self._entries.items() if self._expired(entry)]
        for key in stale:
            del self._entries[key]


@lru_cache
def get_state_store() -> OAuthStateStore:
    return OAuthStateStore(ttl_seconds=get_settings().oauth_state_ttl_seconds)
