"""In-memory landmark store.

Records live in an insertion-ordered dict keyed by id. All reads are linear
filters over that dict, so results come back in insertion order. The store is
append-only and not synchronized: it is meant to be owned by a single event
loop.
"""

import logging
from typing import Dict, List, Optional, Union
from uuid import uuid4

from landmark_cache.models import Landmark, LandmarkCreate

logger = logging.getLogger(__name__)


class LandmarkStore:
    def __init__(self) -> None:
        self._landmarks: Dict[str, Landmark] = {}

    def __len__(self) -> int:
        return len(self._landmarks)

    # ----------------- Writes -----------------

    def insert(self, record: Union[LandmarkCreate, Dict]) -> Landmark:
        """Store *record* under a fresh id and return the stored copy.

        Optional fields that were not supplied are stored as ``None``.
        A plain dict is validated first; a malformed one raises
        ``pydantic.ValidationError`` and nothing is stored.
        """
        if not isinstance(record, LandmarkCreate):
            raw = dict(record)
            raw.pop("id", None)
            record = LandmarkCreate.model_validate(raw)
        data = record.model_dump()
        landmark = Landmark.model_construct(id=str(uuid4()), **data)
        self._landmarks[landmark.id] = landmark
        logger.debug("inserted landmark id=%s external_id=%s", landmark.id, landmark.external_id)
        return landmark

    # ----------------- Reads -----------------

    def get(self, landmark_id: str) -> Optional[Landmark]:
        return self._landmarks.get(landmark_id)

    def find_by_external_id(self, external_id: str) -> Optional[Landmark]:
        for landmark in self._landmarks.values():
            if landmark.external_id == external_id:
                return landmark
        return None

    def query_by_bounds(self, north: float, south: float, east: float, west: float) -> List[Landmark]:
        # plain inclusive range test; inverted boxes match nothing
        return [
            lm for lm in self._landmarks.values()
            if south <= lm.latitude <= north and west <= lm.longitude <= east
        ]

    def search(self, query: str) -> List[Landmark]:
        """Case-insensitive substring match on title, description or category."""
        q = query.lower()
        return [
            lm for lm in self._landmarks.values()
            if q in lm.title.lower()
            or (lm.description and q in lm.description.lower())
            or (lm.category and q in lm.category.lower())
        ]

    def all(self) -> List[Landmark]:
        return list(self._landmarks.values())
