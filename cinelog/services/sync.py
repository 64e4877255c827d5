"""Optimistic synchronisation between the local library and the entry store."""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Callable, Union

from ..errors import DuplicateError, PersistenceError
from ..models import Entry, GameCandidate, MovieCandidate, TasteAnalysis
from .entry_store import EntryStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_SESSIONS = 256


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class EntrySyncController:
    """Apply library mutations locally first, then mirror them to the store.

    Each mutation is visible in :attr:`entries` before the store call
    resolves. When the store rejects it the local list is thrown away and
    reloaded from the store. That reload also discards any other in-flight
    optimistic mutation until the next refresh; this is accepted for a single
    user's cache.
    """

    def __init__(
        self,
        store: EntryStore,
        identity: str | None,
        *,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ):
        self._store = store
        self.identity = identity
        self._clock = clock
        self._id_factory = id_factory
        self.entries: list[Entry] = []

    async def refresh(self) -> list[Entry]:
        """Replace the local list with the store's authoritative copy."""

        self.entries = await self._store.fetch_all(self.identity)
        return self.entries

    async def save(
        self,
        candidate: Union[MovieCandidate, GameCandidate],
        rating: int | None = None,
    ) -> Entry:
        """Add ``candidate`` to the library, most recent first."""

        key = candidate.foreign_key()
        if any(entry.foreign_key() == key for entry in self.entries):
            raise DuplicateError("This title is already in your list")

        entry = Entry(
            id=self._id_factory(),
            rating=rating,
            watched_at=self._clock(),
            **candidate.entry_fields(),
        )
        self.entries = [entry, *self.entries]

        try:
            await self._store.insert(entry, self.identity)
        except PersistenceError:
            logger.exception("Saving %s failed, reloading library", entry.title)
            await self._revert()
            raise
        return entry

    async def remove(self, entry_id: str, *, confirmed: bool) -> bool:
        """Delete ``entry_id`` once the user has confirmed the removal."""

        if not confirmed:
            return False

        self.entries = [entry for entry in self.entries if entry.id != entry_id]
        try:
            await self._store.delete(entry_id, self.identity)
        except PersistenceError:
            logger.exception("Deleting %s failed, reloading library", entry_id)
            await self._revert()
            raise
        return True

    async def _revert(self) -> None:
        try:
            await self.refresh()
        except PersistenceError as exc:
            logger.warning("Library reload after a failed write also failed: %s", exc)


class SessionRegistry:
    """Keep one controller, and the last taste profile, per signed-in identity.

    At most ``max_sessions`` identities are cached; the least recently opened
    one is forgotten first and reloads from the store on its next request.
    """

    def __init__(self, store: EntryStore, *, max_sessions: int = DEFAULT_MAX_SESSIONS):
        self._store = store
        self._max_sessions = max_sessions
        self._controllers: OrderedDict[str, EntrySyncController] = OrderedDict()
        self._analyses: dict[str, TasteAnalysis] = {}

    async def open(self, identity: str) -> EntrySyncController:
        """Return the identity's controller, loading its library on first use."""

        controller = self._controllers.get(identity)
        if controller is None:
            loaded = EntrySyncController(self._store, identity)
            await loaded.refresh()
            # a concurrent open may have registered (and written through) its own
            controller = self._controllers.setdefault(identity, loaded)
        self._controllers.move_to_end(identity)
        self._evict()
        return controller

    def close(self, identity: str) -> None:
        self._controllers.pop(identity, None)
        self._analyses.pop(identity, None)

    def analysis(self, identity: str) -> TasteAnalysis | None:
        return self._analyses.get(identity)

    def remember_analysis(self, identity: str, analysis: TasteAnalysis) -> None:
        self._analyses[identity] = analysis

    def _evict(self) -> None:
        while len(self._controllers) > self._max_sessions:
            identity, _ = self._controllers.popitem(last=False)
            self._analyses.pop(identity, None)
            logger.debug("Evicted cached library for %s", identity)
