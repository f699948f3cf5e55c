import asyncio
from abc import abstractmethod

from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface
from shared.clients.registry.models.Schema import SchemaDetails, SchemaIndex, SchemasListResponse, CONTAINER_TENANT

DEFAULT_PAGE_SIZE = 100     # maximum the registry accepts
DEFAULT_MAX_SCHEMAS = 1000  # the registry reports no reliable total, so crawls are capped


class SchemaRegistryClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "registry"

    def get_sandbox_name(self) -> str | None:
        """
        Returns the sandbox the client is scoped to, if the backend has such a notion.
        """
        return None

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_schemas(self, container: str) -> str:
        """
        Returns the endpoint path for schema listing requests of a container.

        Args:
            container (str): The container to list ("tenant" or "global").

        Returns:
            str: The endpoint path (e.g. "/schemaregistry/tenant/schemas")
        """
        pass

    @abstractmethod
    def _get_endpoint_schema_details(self, schema_id: str, container: str) -> str:
        """
        Returns the endpoint path for a single schema. The id must be URL-encoded by the implementation.

        Args:
            schema_id (str): The identifier of the schema.
            container (str): The container the schema lives in.

        Returns:
            str: The endpoint path (e.g. "/schemaregistry/tenant/schemas/{id}")
        """
        pass

    @abstractmethod
    def _get_endpoint_unions(self) -> str:
        """
        Returns the endpoint path for union schema listing requests.
        """
        pass

    @abstractmethod
    def _get_endpoint_union_details(self, union_id: str) -> str:
        """
        Returns the endpoint path for a single union schema. The id must be URL-encoded by the implementation.
        """
        pass

    @abstractmethod
    def _get_endpoint_registry_stats(self) -> str:
        """
        Returns the endpoint path for the registry statistics.
        """
        pass

    @abstractmethod
    def _get_endpoint_resources(self, resource: str, container: str) -> str:
        """
        Returns the endpoint path for listing a registry resource other than schemas.

        Args:
            resource (str): The resource kind ("fieldgroups", "classes", "datatypes").
            container (str): The container to list.
        """
        pass

    @abstractmethod
    def _get_listing_headers(self) -> dict:
        """
        Returns the extra headers for listing requests (e.g. a compact Accept type).
        """
        pass

    @abstractmethod
    def _get_details_headers(self) -> dict:
        """
        Returns the extra headers for detail requests (e.g. a fully expanded Accept type).
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    ############# LISTING REQUESTS ##############
    async def do_fetch_schemas_page(self, container: str = CONTAINER_TENANT, limit: int = 50, start: str | None = None) -> SchemasListResponse:
        """
        Fetches one page of the schema index of a container.

        Args:
            container (str): The container to list.
            limit (int): The page size.
            start (str | None): The continuation cursor of the previous page. None starts from the beginning.

        Returns:
            SchemasListResponse: The parsed page.

        Raises:
            Exception: If the request fails or returns a non-2xx status.
        """
        return await self._do_fetch_listing(self._get_endpoint_schemas(container), container, limit=limit, start=start)

    async def do_fetch_all_schemas(
        self,
        container: str = CONTAINER_TENANT,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_schemas: int = DEFAULT_MAX_SCHEMAS,
        page_timeout: float | None = None,
    ) -> SchemaIndex:
        """
        Fetches the complete schema index of a container, following the continuation cursor.

        Pagination stops on an empty page, a missing cursor or once max_schemas entries
        were collected. A failing page aborts the crawl but never raises: whatever was
        collected so far is returned and the failure is recorded on the index.

        Args:
            container (str): The container to crawl.
            page_size (int): The page size per request.
            max_schemas (int): Safety cap on the number of collected entries.
            page_timeout (float | None): Overall bound in seconds for each page request.

        Returns:
            SchemaIndex: The collected entries in server order.
        """
        index = SchemaIndex(container=container)
        start: str | None = None
        while True:
            try:
                page = await asyncio.wait_for(
                    self.do_fetch_schemas_page(container=container, limit=page_size, start=start),
                    timeout=page_timeout,
                )
            except Exception as exc:
                index.error = str(exc) or exc.__class__.__name__
                self.logging.warning(
                    "Listing %s schemas aborted after %d page(s) with %d schemas: %s",
                    container, index.pages, len(index.schemas), index.error,
                )
                break

            index.pages += 1
            index.schemas.extend(page.schemas)
            index.results.extend(page.results)
            self.logging.info("Fetched %s schemas page %d: %d results, total %d", container, index.pages, len(page.schemas), len(index.schemas))

            start = page.nextCursor
            if not page.results or not start:
                break
            if len(index.schemas) >= max_schemas:
                self.logging.warning("Listing %s schemas stopped at safety cap of %d.", container, max_schemas)
                break
        return index

    async def do_fetch_unions(self) -> SchemasListResponse:
        """
        Fetches the union schema listing.

        Raises:
            Exception: If the request fails or returns a non-2xx status.
        """
        return await self._do_fetch_listing(self._get_endpoint_unions(), CONTAINER_TENANT)

    async def do_fetch_resources(self, resource: str, container: str = CONTAINER_TENANT, limit: int = 50) -> SchemasListResponse:
        """
        Fetches the first page of a registry resource listing (field groups, classes, data types).

        Raises:
            Exception: If the request fails or returns a non-2xx status.
        """
        return await self._do_fetch_listing(self._get_endpoint_resources(resource, container), container, limit=limit)

    async def _do_fetch_listing(self, endpoint: str, container: str, limit: int | None = None, start: str | None = None) -> SchemasListResponse:
        params: dict = {}
        if limit:
            params["limit"] = limit
        if start:
            params["start"] = start
        resp = await self.do_request(
            method="GET",
            endpoint=endpoint,
            params=params or None,
            additional_headers=self._get_listing_headers(),
            raise_on_error=True,
        )
        return self._parse_endpoint_schemas(resp.json(), container=container)

    ############# DETAIL REQUESTS ##############
    async def do_fetch_schema_document(self, schema_id: str, container: str = CONTAINER_TENANT) -> dict:
        """
        Fetches the fully expanded raw document of a schema.

        Raises:
            Exception: If the request fails or returns a non-2xx status.
        """
        resp = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_schema_details(schema_id, container),
            additional_headers=self._get_details_headers(),
            raise_on_error=True,
        )
        return resp.json()

    async def do_fetch_schema_details(self, schema_id: str, container: str = CONTAINER_TENANT) -> SchemaDetails:
        """
        Fetches and parses the full details of a schema.

        Args:
            schema_id (str): The identifier of the schema (alternate id or $id).
            container (str): The container the schema lives in.

        Returns:
            SchemaDetails: The parsed schema document.

        Raises:
            Exception: If the request fails or returns a non-2xx status.
        """
        return self._parse_endpoint_schema(await self.do_fetch_schema_document(schema_id, container), container=container)

    async def do_fetch_union_document(self, union_id: str) -> dict:
        """
        Fetches the fully expanded raw document of a union schema.

        Raises:
            Exception: If the request fails or returns a non-2xx status.
        """
        resp = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_union_details(union_id),
            additional_headers=self._get_details_headers(),
            raise_on_error=True,
        )
        return resp.json()

    async def do_fetch_union_details(self, union_id: str) -> SchemaDetails:
        """
        Fetches and parses the full details of a union schema.

        Raises:
            Exception: If the request fails or returns a non-2xx status.
        """
        return self._parse_endpoint_schema(await self.do_fetch_union_document(union_id), container=CONTAINER_TENANT)

    async def do_fetch_registry_stats(self) -> dict:
        """
        Fetches the registry statistics document.

        Raises:
            Exception: If the request fails or returns a non-2xx status.
        """
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_registry_stats(), raise_on_error=True)
        return resp.json()

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def _parse_endpoint_schemas(self, response: dict, container: str) -> SchemasListResponse:
        """
        Parses one page of a listing endpoint.

        Args:
            response (dict): The raw response of the listing endpoint.
            container (str): The container that was listed, stamped on every entry.

        Returns:
            SchemasListResponse: The entries of the page and the continuation cursor.
        """
        pass

    @abstractmethod
    def _parse_endpoint_schema(self, response: dict, container: str) -> SchemaDetails:
        """
        Parses a raw schema document into a SchemaDetails object.

        Args:
            response (dict): The raw schema document.
            container (str): The container the schema was fetched from.

        Returns:
            SchemaDetails: The parsed schema.
        """
        pass
