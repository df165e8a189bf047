"""
TTL cache in front of a TemplateStore.

Weekly templates, exclusion windows and room lists change rarely, so slot
searches reuse them for ``TEMPLATE_CACHE_TTL_SECONDS``. Appointments are
never cached: the conflict checker always reads them fresh.
"""

import logging
import time
from typing import Callable, Optional

from booking_engine.config import settings
from booking_engine.schemas.resource_schema import Resource, ResourceKind
from booking_engine.stores.base import ResourceKey, TemplateStore

logger = logging.getLogger(__name__)


class CachedTemplateStore(TemplateStore):
    """Wraps another TemplateStore and memoizes its reads for a fixed TTL."""

    def __init__(
        self,
        inner: TemplateStore,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._inner = inner
        self._ttl = settings.cache.template_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._resources: dict[ResourceKey, tuple[float, Resource]] = {}
        self._rooms: Optional[tuple[float, list[Resource]]] = None
        self.hits = 0
        self.misses = 0

    def _fresh(self, stored_at: float) -> bool:
        return self._clock() - stored_at < self._ttl

    async def get_resource(self, resource_id: str, kind: ResourceKind) -> Resource:
        key = (resource_id, kind.value)
        entry = self._resources.get(key)
        if entry is not None and self._fresh(entry[0]):
            self.hits += 1
            return entry[1]

        self.misses += 1
        resource = await self._inner.get_resource(resource_id, kind)
        self._resources[key] = (self._clock(), resource)
        return resource

    async def list_rooms(self) -> list[Resource]:
        if self._rooms is not None and self._fresh(self._rooms[0]):
            self.hits += 1
            return list(self._rooms[1])

        self.misses += 1
        rooms = await self._inner.list_rooms()
        self._rooms = (self._clock(), list(rooms))
        return list(rooms)

    def invalidate(self, resource_id: Optional[str] = None, kind: Optional[ResourceKind] = None) -> None:
        """Drop cached entries; with no arguments, drop everything."""
        if resource_id is None:
            self._resources.clear()
            self._rooms = None
            logger.debug("Template cache cleared")
            return

        kinds = [kind] if kind is not None else list(ResourceKind)
        for k in kinds:
            self._resources.pop((resource_id, k.value), None)
            if k == ResourceKind.ROOM:
                self._rooms = None
        logger.debug("Template cache invalidated for %s", resource_id)
