import copy

from shared.cache.storage.CacheStorageInterface import CacheStorageInterface


class MemoryCacheStorage(CacheStorageInterface):
    """In-process stand-in for FileCacheStorage. Counts reads and writes."""

    def __init__(self, envelope: dict | None = None):
        self._envelope = copy.deepcopy(envelope)
        self.reads = 0
        self.writes = 0

    def read(self) -> dict | None:
        self.reads += 1
        return copy.deepcopy(self._envelope)

    def write(self, envelope: dict) -> None:
        self.writes += 1
        self._envelope = copy.deepcopy(envelope)

    def describe(self) -> str:
        return "memory"
