from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass, field
from threading import Lock
from typing import Generic, TypeVar

from .models import LatLng, RouteEstimate

V = TypeVar("V")


class MemoCache(Generic[V]):
    """Append-only memo for the life of the process.

    No TTL and no eviction: an entry is written once and later writers for the
    same key get the stored value back.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._items: dict[Hashable, V] = {}

        self._hits = 0
        self._misses = 0

    def get(self, key: Hashable) -> V | None:
        with self._lock:
            value = self._items.get(key)
            if value is None:
                self._misses += 1
                return None
            self._hits += 1
            return value

    def put(self, key: Hashable, value: V) -> V:
        with self._lock:
            return self._items.setdefault(key, value)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return {
                "size": len(self._items),
                "hits": self._hits,
                "misses": self._misses,
            }


def route_cache_key(origin_label: str, destination_label: str) -> tuple[str, str]:
    # Ordered: (A, B) and (B, A) are different transit trips.
    return (origin_label, destination_label)


@dataclass
class EngineCaches:
    geocode: MemoCache[LatLng] = field(default_factory=MemoCache)
    routes: MemoCache[RouteEstimate] = field(default_factory=MemoCache)

    def snapshot(self) -> dict[str, dict[str, int]]:
        return {"geocode": self.geocode.snapshot(), "routes": self.routes.snapshot()}
