from urllib.parse import quote

from shared.clients.auth.AuthClientInterface import AuthClientInterface
from shared.clients.registry.SchemaRegistryClientInterface import SchemaRegistryClientInterface
from shared.clients.registry.models.Schema import SchemaDetails, SchemaSummary, SchemasListResponse
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

REGISTRY_ROOT = "/data/foundation/schemaregistry"
ACCEPT_LISTING = "application/vnd.adobe.xed-id+json"
ACCEPT_FULL = "application/vnd.adobe.xed-full+json; version=1"


class SchemaRegistryClientPlatform(SchemaRegistryClientInterface):
    def __init__(self, helper_config: HelperConfig, auth_client: AuthClientInterface):
        super().__init__(helper_config=helper_config)
        self._auth_client = auth_client
        self._base_url = self.get_config_val("BASE_URL", default="https://platform.adobe.io", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        self._ims_org = self.get_config_val("IMS_ORG", default=None, val_type="string")
        self._sandbox_name = self.get_config_val("SANDBOX_NAME", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Platform"

    def get_sandbox_name(self) -> str | None:
        return self._sandbox_name

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://platform.adobe.io"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="IMS_ORG", val_type="string", default=None),
            EnvConfig(env_key="SANDBOX_NAME", val_type="string", default=None),
        ]

    ################ AUTH ##################
    async def _get_auth_header(self) -> dict:
        token = await self._auth_client.get_access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "x-api-key": self._api_key,
            "x-gw-ims-org-id": self._ims_org,
            "x-sandbox-name": self._sandbox_name,
            "Accept": "application/json",
        }
        return {key: val for key, val in headers.items() if val}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return f"{REGISTRY_ROOT}/stats"

    def _get_endpoint_schemas(self, container: str) -> str:
        return f"{REGISTRY_ROOT}/{container}/schemas"

    def _get_endpoint_schema_details(self, schema_id: str, container: str) -> str:
        return f"{REGISTRY_ROOT}/{container}/schemas/{quote(schema_id, safe='')}"

    def _get_endpoint_unions(self) -> str:
        return f"{REGISTRY_ROOT}/tenant/unions"

    def _get_endpoint_union_details(self, union_id: str) -> str:
        return f"{REGISTRY_ROOT}/tenant/unions/{quote(union_id, safe='')}"

    def _get_endpoint_registry_stats(self) -> str:
        return f"{REGISTRY_ROOT}/stats"

    def _get_endpoint_resources(self, resource: str, container: str) -> str:
        return f"{REGISTRY_ROOT}/{container}/{resource}"

    def _get_listing_headers(self) -> dict:
        return {"Accept": ACCEPT_LISTING}

    def _get_details_headers(self) -> dict:
        return {"Accept": ACCEPT_FULL}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_endpoint_schemas(self, response: dict, container: str) -> SchemasListResponse:
        results = [item for item in response.get("results") or [] if isinstance(item, dict)]
        schemas = []
        for item in results:
            schema_id = item.get("$id") or item.get("meta:altId")
            if not schema_id:
                self.logging.debug("Skipping %s listing entry without identifier: %r", container, item)
                continue
            schemas.append(
                SchemaSummary(
                    engine=self._get_engine_name(),
                    id=schema_id,
                    alt_id=item.get("meta:altId"),
                    title=item.get("title"),
                    container=container,
                )
            )

        # the registry answers with "_page", other gateways with "pageInfo"
        page_info = response.get("_page") or response.get("pageInfo") or {}
        return SchemasListResponse(
            engine=self._get_engine_name(),
            container=container,
            schemas=schemas,
            results=results,
            nextCursor=page_info.get("next") or None,
        )

    def _parse_endpoint_schema(self, response: dict, container: str) -> SchemaDetails:
        return SchemaDetails(
                #base
                engine=self._get_engine_name(),
                id=response.get("$id") or response.get("meta:altId") or "",
                alt_id=response.get("meta:altId"),
                title=response.get("title"),
                container=container,

                #details
                description=response.get("description"),
                type=response.get("type"),
                properties=response.get("properties") or {},
                all_of=[item for item in response.get("allOf") or [] if isinstance(item, dict)],
                required=response.get("required") or [],
            )
