"""Union schema extraction.

Reads the union schemas of the registry and derives the artifacts the query
authoring assistant needs: the flattened profile union and a nested summary of
all unions.
"""

import asyncio
from datetime import datetime, timezone

from shared.clients.registry.SchemaRegistryClientInterface import SchemaRegistryClientInterface
from shared.clients.registry.models.Schema import SchemaDetails, SchemaSummary
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import DictionarySettings
from shared.models.dictionary import ExtractedUnionSchema, UnionProfileField, UnionProfileSchema, UnionSchemaExtract
from services.schema_dictionary.flattening import extract_properties, flatten_union_profile_fields, select_common_attributes

DEFAULT_PROFILE_TITLE = "XDM Individual Profile"


class UnionProfileExtractor:
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

    async def do_extract_profile(self) -> UnionProfileSchema:
        """Flatten the profile union schema into query paths.

        Never raises: failures yield an empty profile carrying an error.

        Returns:
            UnionProfileSchema: The flattened profile fields and the common attribute subset.
        """
        self.logging.info("Extracting union profile schema...")
        try:
            unions = await self.do_fetch_union_details()
            profile_union = self.select_profile_union(unions)

            fields: list[UnionProfileField] = []
            if profile_union is not None:
                flatten_union_profile_fields(profile_union.properties, fields)
        except Exception as exc:
            self.logging.exception("Error extracting union profile schema: %s", exc)
            return UnionProfileSchema(error=str(exc) or exc.__class__.__name__)

        self.logging.info("Extracted %d profile fields.", len(fields))
        return UnionProfileSchema(
            extracted_at=datetime.now(timezone.utc),
            sandbox=self._registry.get_sandbox_name(),
            profile_title=(profile_union.title if profile_union else None) or DEFAULT_PROFILE_TITLE,
            total_fields=len(fields),
            fields=fields,
            common_attributes=select_common_attributes(fields),
        )

    async def do_extract_for_ai(self) -> UnionSchemaExtract:
        """Reduce every union schema to a nested type/title/description tree.

        Raises:
            Exception: If the union listing itself cannot be fetched.
        """
        unions = await self.do_fetch_union_details()
        return UnionSchemaExtract(
            extracted_at=datetime.now(timezone.utc),
            sandbox=self._registry.get_sandbox_name(),
            schemas=[
                ExtractedUnionSchema(
                    id=union.id,
                    title=union.title,
                    description=union.description,
                    type=union.type,
                    properties=extract_properties(union.properties),
                    required=union.required,
                )
                for union in unions
            ],
        )

    async def do_fetch_union_details(self) -> list[SchemaDetails]:
        """Fetch the details of every listed union schema, in listing order.

        Fetches run in sequential batches of settings.batch_size, like the
        dictionary crawl. Unions whose details cannot be fetched are logged and
        left out.

        Raises:
            Exception: If the union listing cannot be fetched.
        """
        listing = await self._registry.do_fetch_unions()
        batch_size = max(1, self._settings.batch_size)
        unions: list[SchemaDetails] = []
        for batch_start in range(0, len(listing.schemas), batch_size):
            batch = listing.schemas[batch_start: batch_start + batch_size]
            results = await asyncio.gather(*[self._fetch_union(union) for union in batch])
            unions.extend(details for details in results if details is not None)
        return unions

    ##########################################
    ############### HELPERS ##################
    ##########################################

    @staticmethod
    def select_profile_union(unions: list[SchemaDetails]) -> SchemaDetails | None:
        """Pick the first union whose title or id mentions "profile", else the first union."""
        for union in unions:
            if "profile" in (union.title or "").lower() or "profile" in union.id.lower():
                return union
        return unions[0] if unions else None

    async def _fetch_union(self, union: SchemaSummary) -> SchemaDetails | None:
        try:
            return await asyncio.wait_for(
                self._registry.do_fetch_union_details(union.fetch_id),
                timeout=self._settings.request_timeout,
            )
        except asyncio.TimeoutError:
            self.logging.warning("Timed out fetching union %s, skipping.", union.fetch_id)
        except Exception as exc:
            self.logging.warning("Failed to fetch union %s, skipping: %s", union.fetch_id, exc)
        return None
