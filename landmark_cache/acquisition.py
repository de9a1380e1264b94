"""Cache-then-backfill for bounding-box queries.

The store answers first. Only when it holds fewer than ``ENOUGH_LANDMARKS``
records for the box do we ask Wikipedia for pages around the box center,
merge the ones we have not seen (by external id) and query the store again.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from landmark_cache.landmark_store import LandmarkStore
from landmark_cache.models import Landmark
from landmark_cache.provider_wikipedia import WikipediaProvider
from landmark_cache.stats import (
    Stats,
    STAT_ADDED,
    STAT_BACKFILLS,
    STAT_BOUNDS_QUERIES,
    STAT_CACHE_HITS,
    STAT_UPSTREAM_CALLS,
)

ENOUGH_LANDMARKS = 5
METERS_PER_DEGREE = 111_000
MAX_FETCH_RADIUS_M = 50_000

logger = logging.getLogger(__name__)


def fetch_center(north: float, south: float, east: float, west: float) -> Tuple[float, float]:
    return (north + south) / 2, (east + west) / 2


def fetch_radius(north: float, south: float, east: float, west: float) -> float:
    """Larger box side in meters (rough degree conversion), capped."""
    span = max(abs(north - south), abs(east - west))
    return min(span * METERS_PER_DEGREE, MAX_FETCH_RADIUS_M)


@dataclass
class BoundsResult:
    landmarks: List[Landmark] = field(default_factory=list)
    backfilled: bool = False
    added: int = 0


class LandmarkAcquirer:
    def __init__(self, store: LandmarkStore, provider: WikipediaProvider, stats: Optional[Stats] = None):
        self.store = store
        self.provider = provider
        self.stats = stats

    async def _incr(self, key: str, by: int = 1) -> None:
        if self.stats is not None:
            await self.stats.incr(key, by)

    def merge(self, candidates) -> int:
        """Insert candidates whose external id is not stored yet. Returns count added."""
        added = 0
        for candidate in candidates:
            if self.store.find_by_external_id(candidate.external_id) is None:
                self.store.insert(candidate)
                added += 1
        return added

    async def landmarks_in_bounds(self, north: float, south: float, east: float, west: float) -> BoundsResult:
        await self._incr(STAT_BOUNDS_QUERIES)
        cached = self.store.query_by_bounds(north, south, east, west)
        if len(cached) >= ENOUGH_LANDMARKS:
            await self._incr(STAT_CACHE_HITS)
            logger.debug("bounds N%s S%s E%s W%s served from cache (%d)", north, south, east, west, len(cached))
            return BoundsResult(landmarks=cached)

        lat, lon = fetch_center(north, south, east, west)
        radius = fetch_radius(north, south, east, west)
        await self._incr(STAT_BACKFILLS)
        await self._incr(STAT_UPSTREAM_CALLS)
        candidates = await self.provider.search_landmarks_by_coordinates(lat, lon, radius)

        added = self.merge(candidates)
        await self._incr(STAT_ADDED, added)
        landmarks = self.store.query_by_bounds(north, south, east, west)
        logger.info(
            "backfill at %.5f,%.5f r=%dm: %d candidates, %d new, %d in box (had %d)",
            lat, lon, radius, len(candidates), added, len(landmarks), len(cached),
        )
        return BoundsResult(landmarks=landmarks, backfilled=True, added=added)
