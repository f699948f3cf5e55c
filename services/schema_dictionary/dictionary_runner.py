"""Dictionary warm-up runner.

Builds (or loads) the schema dictionary and the union profile so the first
dashboard request is served from cache. Set DICTIONARY_FORCE_REFRESH=true to
rebuild even if the caches are fresh.

Usage:
    python -m services.schema_dictionary.dictionary_runner
"""

import asyncio

from shared.clients.auth.AuthClientStatic import AuthClientStatic
from shared.clients.registry.platform.SchemaRegistryClientPlatform import SchemaRegistryClientPlatform
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.config import DictionarySettings
from services.schema_dictionary.SchemaDictionaryService import SchemaDictionaryService


async def main() -> None:
    """Warm both schema dictionary caches."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    force_refresh = config.get_bool_val("DICTIONARY_FORCE_REFRESH", default=False)

    registry_client = SchemaRegistryClientPlatform(helper_config=config, auth_client=AuthClientStatic(helper_config=config))
    try:
        # the registry is required, there is nothing to warm without it
        try:
            await registry_client.boot()
            await registry_client.do_healthcheck()
        except Exception as e:
            logger.error(f"Error booting registry client {registry_client.get_engine_name()}: {e}. Aborting.")
            return

        service = SchemaDictionaryService(
            helper_config=config,
            registry_client=registry_client,
            settings=DictionarySettings.from_config(config),
        )

        dictionary = await service.generate_dictionary(force_refresh=force_refresh)
        if dictionary.error:
            logger.error("Dictionary build failed: %s", dictionary.error)
        else:
            logger.info(
                "Dictionary ready: %d fields from %d schemas (cached=%s).",
                len(dictionary.fields), dictionary.total_schemas, dictionary.cached,
            )

        profile = await service.get_union_profile_schema(force_refresh=force_refresh)
        if profile.error:
            logger.error("Union profile extraction failed: %s", profile.error)
        else:
            logger.info("Union profile ready: %d fields (cached=%s).", profile.total_fields, profile.cached)
    finally:
        await registry_client.close()

if __name__ == "__main__":
    asyncio.run(main())
