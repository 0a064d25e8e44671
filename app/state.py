"""Shared bot state: place catalog, place info cache and the vote board.

Everything lives in one BotState guarded by a single reader/writer lock:

    BotState ── RWLock
      ├── places      list[Place]            replaced by reload()
      ├── fish        dict[int, FishKind]    replaced by reload()
      ├── top_ids     list[int]              replaced by set_top()
      ├── cache       dict[int, PlaceInfo | None]
      └── votes       dict[int, VoteRecord]  keyed by channel message id

Rules:
  - Readers (search, cache hits) never block each other.
  - Any writer (reload, cache fill, vote toggle, snapshot load) is exclusive.
  - Nothing awaits network I/O while holding the lock. Fetches happen before
    a write section starts, sends happen after it ends.
  - Data leaves the lock only as copies.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, Optional

from rivnefish.models import FishKind, Place, PlaceInfo

from app.metrics import CACHE_LOOKUPS

logger = logging.getLogger(__name__)

# Inline search returns at most this many catalog matches.
MAX_SEARCH_RESULTS = 10

PlaceFetcher = Callable[[int], Awaitable[Optional[PlaceInfo]]]


class RWLock:
    """Asyncio reader/writer lock.

    Any number of readers may hold the lock together; a writer holds it
    alone. A waiting writer stops new readers from entering, so a steady
    stream of searches cannot starve reloads or vote toggles.
    """

    def __init__(self):
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def locked_for_write(self) -> bool:
        return self._writer

    async def _notify(self):
        async with self._cond:
            self._cond.notify_all()

    @asynccontextmanager
    async def read(self):
        async with self._cond:
            await self._cond.wait_for(
                lambda: not self._writer and not self._writers_waiting
            )
            self._readers += 1
        try:
            yield
        finally:
            # Counters change before any await so a cancelled release still
            # frees the lock.
            self._readers -= 1
            if not self._readers:
                await asyncio.shield(self._notify())

    @asynccontextmanager
    async def write(self):
        async with self._cond:
            self._writers_waiting += 1
            try:
                await self._cond.wait_for(
                    lambda: not self._writer and not self._readers
                )
            finally:
                self._writers_waiting -= 1
                # A cancelled writer must not leave readers parked behind it.
                self._cond.notify_all()
            self._writer = True
        try:
            yield
        finally:
            self._writer = False
            await asyncio.shield(self._notify())


@dataclass
class VoteRecord:
    """Votes collected under one published report message."""
    target_url: str
    voters: set[int] = field(default_factory=set)

    @property
    def count(self) -> int:
        return len(self.voters)

    def copy(self) -> "VoteRecord":
        return VoteRecord(target_url=self.target_url, voters=set(self.voters))


class BotState:
    """Process-wide bot state. See the module docstring for the lock rules."""

    def __init__(self):
        self.lock = RWLock()
        self._places: list[Place] = []
        self._fish: dict[int, FishKind] = {}
        self._top_ids: list[int] = []
        self._cache: dict[int, Optional[PlaceInfo]] = {}
        self._votes: dict[int, VoteRecord] = {}

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def reload(self, places: Iterable[Place], fish: Iterable[FishKind]) -> None:
        """Install a freshly fetched catalog and drop every cached place info.

        Both happen in one write section, so no reader can pair the new
        catalog with info cached for the old one.
        """
        new_places = list(places)
        new_fish = {f.id: f for f in fish}
        async with self.lock.write():
            dropped = len(self._cache)
            self._places = new_places
            self._fish = new_fish
            self._cache.clear()
        logger.info(
            f"Reloaded place list ({len(new_places)} places, {len(new_fish)} fish kinds), "
            f"invalidated {dropped} cache entries"
        )

    async def set_top(self, ids: Iterable[int]) -> int:
        new_top = list(ids)
        async with self.lock.write():
            self._top_ids = new_top
        logger.info(f"Updated top fishing places with {len(new_top)} items")
        return len(new_top)

    async def matching_ids(self, query: str) -> list[int]:
        """Candidate place ids for an inline query.

        Empty query → the configured top ids, in order. Otherwise the first
        MAX_SEARCH_RESULTS catalog places whose name contains the query,
        case-insensitively, in catalog order.
        """
        key = query.casefold()
        async with self.lock.read():
            if not key:
                return list(self._top_ids)
            matches = []
            for place in self._places:
                if key in place.name.casefold():
                    matches.append(place.id)
                    if len(matches) == MAX_SEARCH_RESULTS:
                        break
            return matches

    async def fish_kinds(self) -> dict[int, FishKind]:
        async with self.lock.read():
            return dict(self._fish)

    # ------------------------------------------------------------------
    # Place info cache
    # ------------------------------------------------------------------

    async def get_info_for(self, place_id: int, fetch: PlaceFetcher) -> Optional[PlaceInfo]:
        """Return cached info for a place, fetching it on first use.

        A cached None (upstream had nothing usable) counts as a hit, so a
        failing id is fetched once per cache lifetime.

        There is no per-key in-flight tracking: two concurrent misses on the
        same id both fetch, and the later write wins. Both callers still get
        a valid value.
        """
        async with self.lock.read():
            if place_id in self._cache:
                CACHE_LOOKUPS.labels(result="hit").inc()
                return self._cache[place_id]

        CACHE_LOOKUPS.labels(result="miss").inc()
        fetched = await fetch(place_id)

        async with self.lock.write():
            self._cache[place_id] = fetched
        return fetched

    async def cache_size(self) -> int:
        async with self.lock.read():
            return len(self._cache)

    # ------------------------------------------------------------------
    # Vote board
    # ------------------------------------------------------------------

    async def register_report(self, message_id: int, target_url: str) -> VoteRecord:
        """Start tracking votes for a published message.

        Insert-if-absent: registering an already known message keeps its votes.
        """
        async with self.lock.write():
            record = self._votes.setdefault(message_id, VoteRecord(target_url=target_url))
            return record.copy()

    async def toggle_vote(self, message_id: int, user_id: int) -> Optional[VoteRecord]:
        """Cast or undo `user_id`'s vote on a published message.

        Returns a copy of the updated record, or None when the message was
        never registered as a votable report.
        """
        async with self.lock.write():
            record = self._votes.get(message_id)
            if record is None:
                return None
            if user_id in record.voters:
                record.voters.discard(user_id)
            else:
                record.voters.add(user_id)
            return record.copy()

    async def get_votes(self, message_id: int) -> Optional[VoteRecord]:
        async with self.lock.read():
            record = self._votes.get(message_id)
            return record.copy() if record is not None else None

    async def load_votes(self, records: dict[int, VoteRecord]) -> None:
        """Replace the whole vote board."""
        new_votes = {mid: rec.copy() for mid, rec in records.items()}
        async with self.lock.write():
            self._votes = new_votes
        logger.info(f"Loaded vote board with {len(new_votes)} messages")

    async def snapshot_votes(self) -> dict[int, VoteRecord]:
        async with self.lock.read():
            return {mid: rec.copy() for mid, rec in self._votes.items()}
