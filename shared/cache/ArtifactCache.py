"""Two-tier (memory + durable storage) cache for expensive, rebuild-on-expiry artifacts."""

import asyncio
import time
from typing import Awaitable, Callable, Generic, TypeVar

from pydantic import ValidationError

from shared.cache.storage.CacheStorageInterface import CacheStorageInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.dictionary import CamelModel

T = TypeVar("T", bound=CamelModel)


class ArtifactCache(Generic[T]):
    """Caches one artifact in memory and in a durable storage, with a fixed time-to-live.

    Lookup order is memory, then storage, then a rebuild. Concurrent misses
    share a single in-flight build. Artifacts carrying an error are returned
    but never stored.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        name: str,
        builder: Callable[[], Awaitable[T]],
        storage: CacheStorageInterface,
        model: type[T],
        envelope_key: str,
        ttl_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._name = name
        self._builder = builder
        self._storage = storage
        self._model = model
        self._envelope_key = envelope_key
        self._ttl_seconds = ttl_seconds
        self._clock = clock

        # memory tier
        self._artifact: T | None = None
        self._built_at: float | None = None

        self._inflight: asyncio.Future | None = None

    ##########################################
    ################ CORE ####################
    ##########################################

    async def get(self, force_refresh: bool = False) -> T:
        """Return the cached artifact, rebuilding it if both tiers are cold or stale.

        Args:
            force_refresh (bool): Skip both tiers and rebuild.

        Returns:
            T: The artifact, tagged cached=True when served from a tier.
        """
        if not force_refresh:
            hit = self._get_from_memory()
            if hit is None:
                hit = self._get_from_storage()
            if hit is not None:
                return hit.model_copy(update={"cached": True})

        artifact = await self._build_shared()
        return artifact.model_copy(update={"cached": False})

    def is_fresh(self, built_at: float | None) -> bool:
        return built_at is not None and self._clock() - built_at < self._ttl_seconds

    ##########################################
    ################ TIERS ###################
    ##########################################

    def _get_from_memory(self) -> T | None:
        if self._artifact is None or not self.is_fresh(self._built_at):
            return None
        self.logging.info("%s: returning cached data (%ds old)", self._name, int(self._clock() - self._built_at))
        return self._artifact

    def _get_from_storage(self) -> T | None:
        """Load the stored envelope into memory if it is fresh. Any read problem counts as a miss."""
        try:
            envelope = self._storage.read()
        except Exception as exc:
            self.logging.error("%s: failed to read cache from %s: %s", self._name, self._storage.describe(), exc)
            return None
        if not isinstance(envelope, dict):
            return None

        timestamp = envelope.get("timestamp")
        if not isinstance(timestamp, (int, float)) or isinstance(timestamp, bool):
            self.logging.warning("%s: ignoring cache in %s without valid timestamp.", self._name, self._storage.describe())
            return None
        built_at = timestamp / 1000
        if not self.is_fresh(built_at):
            return None

        try:
            artifact = self._model.model_validate(envelope.get(self._envelope_key))
        except ValidationError as exc:
            self.logging.warning("%s: ignoring malformed cache in %s: %s", self._name, self._storage.describe(), exc)
            return None

        self.logging.info("%s: loaded cache from %s", self._name, self._storage.describe())
        self._artifact = artifact
        self._built_at = built_at
        return artifact

    def _store(self, artifact: T) -> None:
        now = self._clock()
        self._artifact = artifact
        self._built_at = now
        try:
            self._storage.write({
                "timestamp": int(now * 1000),
                self._envelope_key: artifact.to_json_dict(exclude={"cached"}),
            })
            self.logging.info("%s: cache saved to %s", self._name, self._storage.describe())
        except Exception as exc:
            self.logging.error("%s: failed to save cache to %s: %s", self._name, self._storage.describe(), exc)

    ##########################################
    ################ BUILD ###################
    ##########################################

    async def _build_shared(self) -> T:
        """Join the running build or start one. The build survives cancellation of any single caller."""
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._build_and_store())
            self._inflight.add_done_callback(self._clear_inflight)
        else:
            self.logging.info("%s: joining build already in progress.", self._name)
        return await asyncio.shield(self._inflight)

    def _clear_inflight(self, future: asyncio.Future) -> None:
        if self._inflight is future:
            self._inflight = None

    async def _build_and_store(self) -> T:
        artifact = await self._builder()
        if getattr(artifact, "error", None):
            self.logging.warning("%s: build finished with error, not caching: %s", self._name, artifact.error)
            return artifact
        self._store(artifact)
        return artifact
