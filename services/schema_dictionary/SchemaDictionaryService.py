"""Schema dictionary service.

Entry point for route handlers and the warm-up runner. Owns the two artifact
caches (field dictionary, union profile) and the registry statistics.
"""

import asyncio
import os
import time
from typing import Callable

from shared.cache.ArtifactCache import ArtifactCache
from shared.cache.storage.CacheStorageInterface import CacheStorageInterface
from shared.cache.storage.FileCacheStorage import FileCacheStorage
from shared.clients.registry.SchemaRegistryClientInterface import SchemaRegistryClientInterface
from shared.clients.registry.models.Schema import CONTAINER_GLOBAL, CONTAINER_TENANT, SchemasListResponse
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import DictionarySettings
from shared.models.dictionary import Dictionary, SchemaStats, UnionProfileSchema, UnionSchemaExtract
from services.schema_dictionary.DictionaryBuilder import DictionaryBuilder
from services.schema_dictionary.UnionProfileExtractor import UnionProfileExtractor

DICTIONARY_CACHE_FILE = "schema_dictionary_cache.json"
UNION_PROFILE_CACHE_FILE = "union_profile_cache.json"


class SchemaDictionaryService:
    """Serves the cached schema dictionary and union profile, building them on demand."""

    def __init__(
        self,
        helper_config: HelperConfig,
        registry_client: SchemaRegistryClientInterface,
        settings: DictionarySettings,
        dictionary_storage: CacheStorageInterface | None = None,
        union_profile_storage: CacheStorageInterface | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._registry = registry_client
        self._builder = DictionaryBuilder(helper_config, registry_client, settings)
        self._extractor = UnionProfileExtractor(helper_config, registry_client, settings)

        self._dictionary_cache: ArtifactCache[Dictionary] = ArtifactCache(
            helper_config,
            name="Dictionary",
            builder=self._builder.do_build,
            storage=dictionary_storage or FileCacheStorage(os.path.join(settings.cache_dir, DICTIONARY_CACHE_FILE)),
            model=Dictionary,
            envelope_key="dictionary",
            ttl_seconds=settings.cache_ttl_seconds,
            clock=clock,
        )
        self._union_profile_cache: ArtifactCache[UnionProfileSchema] = ArtifactCache(
            helper_config,
            name="Union profile",
            builder=self._extractor.do_extract_profile,
            storage=union_profile_storage or FileCacheStorage(os.path.join(settings.cache_dir, UNION_PROFILE_CACHE_FILE)),
            model=UnionProfileSchema,
            envelope_key="profileSchema",
            ttl_seconds=settings.cache_ttl_seconds,
            clock=clock,
        )

    ##########################################
    ################ CORE ####################
    ##########################################

    async def generate_dictionary(self, force_refresh: bool = False) -> Dictionary:
        """Return the field dictionary of all tenant and global schemas.

        Args:
            force_refresh (bool): Rebuild even if a fresh cached dictionary exists.

        Returns:
            Dictionary: The dictionary, tagged cached=True when served from cache.
        """
        return await self._dictionary_cache.get(force_refresh=force_refresh)

    async def get_union_profile_schema(self, force_refresh: bool = False) -> UnionProfileSchema:
        """Return the flattened profile union schema for query authoring.

        Args:
            force_refresh (bool): Rebuild even if a fresh cached profile exists.

        Returns:
            UnionProfileSchema: The profile schema, tagged cached=True when served from cache.
        """
        return await self._union_profile_cache.get(force_refresh=force_refresh)

    async def extract_union_schemas_for_ai(self) -> UnionSchemaExtract:
        """Return all union schemas as nested trees. Not cached.

        Raises:
            Exception: If the union listing cannot be fetched.
        """
        return await self._extractor.do_extract_for_ai()

    async def get_schema_stats(self) -> SchemaStats:
        """Count the registry resources shown on the dashboard.

        Each listing that fails counts as empty. Never raises.
        """
        try:
            registry_stats, tenant_schemas, global_schemas, unions, field_groups, classes, data_types = await asyncio.gather(
                self._fallback(self._registry.do_fetch_registry_stats(), None),
                self._fallback(self._registry.do_fetch_schemas_page(CONTAINER_TENANT, limit=100), []),
                self._fallback(self._registry.do_fetch_schemas_page(CONTAINER_GLOBAL, limit=100), []),
                self._fallback(self._registry.do_fetch_unions(), []),
                self._fallback(self._registry.do_fetch_resources("fieldgroups", CONTAINER_TENANT, limit=100), []),
                self._fallback(self._registry.do_fetch_resources("classes", CONTAINER_TENANT, limit=50), []),
                self._fallback(self._registry.do_fetch_resources("datatypes", CONTAINER_TENANT, limit=50), []),
            )
            tenant_count = self._count(tenant_schemas)
            global_count = self._count(global_schemas)
            return SchemaStats(
                tenant_id=(registry_stats or {}).get("tenantId"),
                tenant_schemas=tenant_count,
                global_schemas=global_count,
                total_schemas=tenant_count + global_count,
                unions=self._count(unions),
                field_groups=self._count(field_groups),
                classes=self._count(classes),
                data_types=self._count(data_types),
            )
        except Exception as exc:
            self.logging.exception("Error getting schema stats: %s", exc)
            return SchemaStats(error=str(exc) or exc.__class__.__name__)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _fallback(self, request, default):
        try:
            return await request
        except Exception as exc:
            self.logging.warning("Schema stats request failed, counting as empty: %s", exc)
            return default

    @staticmethod
    def _count(listing: SchemasListResponse | list) -> int:
        if isinstance(listing, SchemasListResponse):
            return len(listing.schemas)
        return len(listing)
