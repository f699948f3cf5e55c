"""Dictionary builder.

Crawls the tenant and global schema containers of the registry, fetches the
full document of every listed schema and flattens all of them into one field
dictionary. Both container indexes are paginated concurrently; tenant schemas
are processed while the global index is still being listed.
"""

import asyncio
import time
from datetime import datetime, timezone

from shared.clients.registry.SchemaRegistryClientInterface import SchemaRegistryClientInterface
from shared.clients.registry.models.Schema import CONTAINER_GLOBAL, CONTAINER_TENANT, SchemaDetails, SchemaIndex, SchemaSummary
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import DictionarySettings
from shared.models.dictionary import Dictionary, FieldRecord
from services.schema_dictionary.flattening import flatten_schema_detail


class DictionaryBuilder:
    """Produces one fresh Dictionary per call to do_build()."""

    def __init__(
        self,
        helper_config: HelperConfig,
        registry_client: SchemaRegistryClientInterface,
        settings: DictionarySettings,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._registry = registry_client
        self._settings = settings

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_build(self) -> Dictionary:
        """Crawl both containers and assemble the dictionary.

        Never raises. If neither container could be listed, or anything
        unexpected fails, an empty dictionary carrying an error is returned.

        Returns:
            Dictionary: The freshly built dictionary.
        """
        self.logging.info("Building fresh schema dictionary...")
        started = time.monotonic()
        fields: list[FieldRecord] = []
        schema_names: list[str] = []

        try:
            tenant_task = asyncio.create_task(self._do_fetch_index(CONTAINER_TENANT))
            global_task = asyncio.create_task(self._do_fetch_index(CONTAINER_GLOBAL))
            try:
                tenant_index = await tenant_task
                self.logging.info("Processing %d tenant schemas while global schemas are listed...", len(tenant_index.schemas))
                await self._process_container(tenant_index, fields, schema_names)
                self.logging.info(
                    "Tenant done (%d schemas, %d fields). Now processing global...", len(schema_names), len(fields)
                )

                global_index = await global_task
            finally:
                if not global_task.done():
                    global_task.cancel()
            await self._process_container(global_index, fields, schema_names)

            if self._is_total_failure(tenant_index, global_index):
                return self._build_error_dictionary(
                    f"Schema registry unreachable: tenant: {tenant_index.error}; global: {global_index.error}",
                    started,
                )
        except Exception as exc:
            self.logging.exception("Error generating schema dictionary: %s", exc)
            return self._build_error_dictionary(str(exc) or exc.__class__.__name__, started)

        elapsed = round(time.monotonic() - started, 1)
        self.logging.info(
            "Dictionary complete: %d fields from %d schemas in %.1fs", len(fields), len(schema_names), elapsed, color="green"
        )
        return Dictionary(
            generated_at=datetime.now(timezone.utc),
            total_schemas=len(schema_names),
            schema_names=schema_names,
            fields=fields,
            processing_time_seconds=elapsed,
        )

    ##########################################
    ############### PAGINATION ###############
    ##########################################

    async def _do_fetch_index(self, container: str) -> SchemaIndex:
        self.logging.info("Listing %s schemas...", container)
        return await self._registry.do_fetch_all_schemas(
            container=container,
            page_size=self._settings.page_size,
            max_schemas=self._settings.max_schemas,
            page_timeout=self._settings.request_timeout,
        )

    ##########################################
    ############### PROCESSING ###############
    ##########################################

    async def _process_container(self, index: SchemaIndex, fields: list[FieldRecord], schema_names: list[str]) -> None:
        """Process a container index in sequential batches of settings.batch_size schemas."""
        batch_size = max(1, self._settings.batch_size)
        batch_count = (len(index.schemas) + batch_size - 1) // batch_size
        for batch_number, batch_start in enumerate(range(0, len(index.schemas), batch_size), start=1):
            batch = index.schemas[batch_start: batch_start + batch_size]
            self.logging.info("%s batch %d/%d", index.container.capitalize(), batch_number, batch_count)
            await self._process_batch(batch, fields, schema_names)

    async def _process_batch(self, batch: list[SchemaSummary], fields: list[FieldRecord], schema_names: list[str]) -> None:
        """Fetch all schema details of a batch concurrently and flatten them in listing order."""
        results = await asyncio.gather(*[self._fetch_details(schema) for schema in batch])
        for details in results:
            if details is None:
                continue
            flatten_schema_detail(details, fields, schema_names)

    async def _fetch_details(self, schema: SchemaSummary) -> SchemaDetails | None:
        """Fetch one schema document. Failures and timeouts are logged and yield None."""
        try:
            return await asyncio.wait_for(
                self._registry.do_fetch_schema_details(schema.fetch_id, schema.container),
                timeout=self._settings.request_timeout,
            )
        except asyncio.TimeoutError:
            self.logging.warning("Timed out fetching %s schema %s, skipping.", schema.container, schema.fetch_id)
        except Exception as exc:
            self.logging.warning("Failed to fetch %s schema %s, skipping: %s", schema.container, schema.fetch_id, exc)
        return None

    ##########################################
    ############### HELPERS ##################
    ##########################################

    @staticmethod
    def _is_total_failure(tenant_index: SchemaIndex, global_index: SchemaIndex) -> bool:
        return all(index.error and not index.schemas for index in (tenant_index, global_index))

    def _build_error_dictionary(self, error: str, started: float) -> Dictionary:
        self.logging.error("Schema dictionary build failed: %s", error)
        return Dictionary(
            generated_at=datetime.now(timezone.utc),
            processing_time_seconds=round(time.monotonic() - started, 1),
            error=error,
        )
