"""
Event Deduplicator - Collapses same-kind candidates within one time bucket
"""

import math
from datetime import datetime
from typing import Set, Tuple

from ..models import ViolationKind

DedupKey = Tuple[ViolationKind, int]


def dedup_key(kind: ViolationKind, timestamp: datetime, bucket_seconds: int = 1) -> DedupKey:
    """
    Key for a candidate: (kind, floor(epoch_seconds / bucket_seconds)).

    Buckets are aligned to the epoch, so duplicates straddling a bucket
    boundary (x.999s and x+1.001s) land in different buckets.
    """
    return kind, math.floor(timestamp.timestamp() / bucket_seconds)


class EventDeduplicator:
    """First candidate per key wins; later ones are dropped."""

    def __init__(self, bucket_seconds: int = 1):
        self.bucket_seconds = max(1, int(bucket_seconds))
        self._seen: Set[DedupKey] = set()

    def key_for(self, kind: ViolationKind, timestamp: datetime) -> DedupKey:
        return dedup_key(kind, timestamp, self.bucket_seconds)

    def accept(self, kind: ViolationKind, timestamp: datetime) -> bool:
        """
        Record a candidate.

        Returns:
            True if this is the first candidate for its key
        """
        key = self.key_for(kind, timestamp)
        if key in self._seen:
            return False
        self._seen.add(key)
        return True

    def __len__(self) -> int:
        return len(self._seen)
