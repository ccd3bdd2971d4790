"""
Rollup cache.

Current-cost rollups are cached per part in the Django cache. Any change
under a part invalidates it together with every ancestor.
"""

import logging
from typing import Iterable, Optional
from uuid import UUID

from django.core.cache import cache

from domain.bom.read_models import CostRollup

logger = logging.getLogger(__name__)

KEY_PREFIX = 'bom:rollup:'


class RollupCache:

    def __init__(self, timeout: Optional[int] = 300):
        self.timeout = timeout

    @staticmethod
    def key(part_id: UUID) -> str:
        return f"{KEY_PREFIX}{part_id}"

    def get(self, part_id: UUID) -> Optional[CostRollup]:
        return cache.get(self.key(part_id))

    def set(self, rollup: CostRollup) -> None:
        cache.set(self.key(rollup.part_id), rollup, self.timeout)

    def invalidate(self, part_ids: Iterable[UUID]) -> None:
        keys = [self.key(part_id) for part_id in set(part_ids)]
        if keys:
            cache.delete_many(keys)
            logger.debug("Invalidated %d cached rollups", len(keys))
