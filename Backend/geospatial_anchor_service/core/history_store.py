"""
History Store - Bounded persistence for geospatial anchor history
Age- and capacity-bounded anchor records behind a key-value backend
"""

import logging
from typing import Dict, Any, Optional
from datetime import datetime

from pydantic import ValidationError

from .anchor_history import (
    AnchorRecord,
    HistoryCollection,
    serialize_history,
    deserialize_history
)
from .interfaces import KeyValueStore, Clock, SystemClock

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "PersistentGeospatialAnchors"
DEFAULT_STORAGE_LIMIT = 5


def is_expired(record: AnchorRecord, current: datetime) -> bool:
    """
    Check the age rule for a stored record

    Records are compared by calendar day, so an anchor created late yesterday
    is expired shortly after midnight while one from earlier today is kept.
    """
    return (current.date() - record.created_at.date()).days > 0


class HistoryStore:
    """
    Persistent anchor history
    Keeps at most storage_limit records, newest first, evicting expired ones on load
    """

    def __init__(self, store: KeyValueStore, clock: Optional[Clock] = None,
                 storage_key: str = DEFAULT_STORAGE_KEY,
                 storage_limit: int = DEFAULT_STORAGE_LIMIT):
        if storage_limit < 1:
            raise ValueError("Storage limit must be positive")

        self.store = store
        self.clock = clock or SystemClock()
        self.storage_key = storage_key
        self.storage_limit = storage_limit

        self.stats = {
            'loads': 0,
            'saves': 0,
            'save_failures': 0,
            'expired_evicted': 0,
            'capacity_evicted': 0,
            'corrupt_resets': 0
        }

    def load(self) -> HistoryCollection:
        """Load stored history, dropping expired records and writing the result back"""
        self.stats['loads'] += 1

        try:
            if not self.store.has_key(self.storage_key):
                return HistoryCollection()

            blob = self.store.get_string(self.storage_key)
        except Exception as e:
            logger.error(f"Failed to read anchor history: {e}")
            return HistoryCollection()

        if blob is None:
            return HistoryCollection()

        try:
            collection = deserialize_history(blob)
        except ValidationError as e:
            logger.warning(f"Discarding corrupt anchor history: {e.error_count()} error(s)")
            self.stats['corrupt_resets'] += 1
            self._write(HistoryCollection())
            return HistoryCollection()

        current = self.clock.now()
        kept = HistoryCollection(record for record in collection if not is_expired(record, current))

        expired = len(collection) - len(kept)
        if expired:
            self.stats['expired_evicted'] += expired
            logger.info(f"Evicted {expired} expired anchor(s) from history")

        self._write(kept)
        return kept

    def save(self, collection: HistoryCollection) -> HistoryCollection:
        """Persist the newest storage_limit records, newest first"""
        bounded = collection.newest_first(self.storage_limit)

        dropped = len(collection) - len(bounded)
        if dropped:
            self.stats['capacity_evicted'] += dropped
            logger.debug(f"Dropped {dropped} oldest anchor(s) over storage limit {self.storage_limit}")

        self._write(bounded)
        return bounded

    def clear(self) -> HistoryCollection:
        """Persist an empty history"""
        empty = HistoryCollection()
        self._write(empty)
        logger.info("Anchor history cleared")
        return empty

    def _write(self, collection: HistoryCollection) -> bool:
        try:
            self.store.set_string(self.storage_key, serialize_history(collection))
            self.stats['saves'] += 1
            return True

        except Exception as e:
            logger.error(f"Failed to persist anchor history: {e}")
            self.stats['save_failures'] += 1
            return False

    def get_metrics(self) -> Dict[str, Any]:
        """Get history persistence metrics"""
        return {
            'statistics': dict(self.stats),
            'configuration': {
                'storage_key': self.storage_key,
                'storage_limit': self.storage_limit
            }
        }
