"""Shared fixtures: a fake schema registry served through httpx.MockTransport."""

import asyncio
import logging
from contextlib import asynccontextmanager
from urllib.parse import unquote

import httpx
import pytest

from shared.cache.storage.MemoryCacheStorage import MemoryCacheStorage
from shared.clients.auth.AuthClientStatic import AuthClientStatic
from shared.clients.registry.platform.SchemaRegistryClientPlatform import SchemaRegistryClientPlatform
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from shared.models.config import DictionarySettings
from services.schema_dictionary.SchemaDictionaryService import SchemaDictionaryService

REGISTRY_ROOT = "/data/foundation/schemaregistry"


def make_listing_entry(container: str, n: int, title: str | None = None) -> dict:
    return {
        "$id": f"https://ns.example.com/{container}/schemas/s{n}",
        "meta:altId": f"_{container}.schemas.s{n}",
        "title": title or f"{container.capitalize()} Schema {n}",
    }


def make_detail(entry: dict, properties: dict | None = None) -> dict:
    return {
        "$id": entry["$id"],
        "meta:altId": entry["meta:altId"],
        "title": entry["title"],
        "type": "object",
        "properties": properties if properties is not None else {
            "email": {"type": "string", "title": "Email"},
        },
    }


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRegistryApi:
    """In-memory schema registry speaking the platform's listing and detail shapes.

    Listing cursors are plain offsets. With always_next set, every non-empty
    page advertises a next cursor, so the crawl only ends on an empty page.
    """

    def __init__(self, always_next: bool = False):
        self.containers: dict[str, list[dict]] = {"tenant": [], "global": []}
        self.details: dict[str, dict] = {}
        self.unions: list[dict] = []
        self.union_details: dict[str, dict] = {}
        self.failing_ids: set[str] = set()
        self.failing_containers: set[str] = set()
        self.slow_ids: dict[str, float] = {}
        self.listing_delays: dict[str, float] = {}
        self.events: list[tuple[str, str]] = []
        self.union_delay = 0.0
        self.union_inflight = 0
        self.max_union_inflight = 0
        self.always_next = always_next
        self.requests: list[httpx.Request] = []

    def add_schemas(self, container: str, count: int, properties: dict | None = None) -> list[dict]:
        entries = []
        offset = len(self.containers[container])
        for n in range(offset, offset + count):
            entry = make_listing_entry(container, n)
            self.containers[container].append(entry)
            self.details[entry["meta:altId"]] = make_detail(entry, properties)
            entries.append(entry)
        return entries

    def add_union(self, union_id: str, title: str, properties: dict) -> None:
        self.unions.append({"$id": union_id, "title": title})
        self.union_details[union_id] = {"$id": union_id, "title": title, "type": "object", "properties": properties}

    def listing_requests(self, container: str) -> list[httpx.Request]:
        path = f"{REGISTRY_ROOT}/{container}/schemas"
        return [r for r in self.requests if r.url.path == path]

    def detail_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if "/schemas/" in r.url.raw_path.decode()]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        raw_path = request.url.raw_path.decode().split("?")[0]
        segments = raw_path[len(REGISTRY_ROOT) + 1:].split("/")

        if segments == ["stats"]:
            return httpx.Response(200, json={"tenantId": "acme"})

        if len(segments) == 2 and segments[1] == "schemas":
            container = segments[0]
            self.events.append(("list-start", container))
            if container in self.listing_delays:
                await asyncio.sleep(self.listing_delays[container])
            self.events.append(("list-end", container))
            if container in self.failing_containers:
                return httpx.Response(503, text="unavailable")
            return self._page(self.containers.get(container, []), request)

        if len(segments) == 3 and segments[1] == "schemas":
            schema_id = unquote(segments[2])
            self.events.append(("detail", segments[0]))
            if schema_id in self.slow_ids:
                await asyncio.sleep(self.slow_ids[schema_id])
            if schema_id in self.failing_ids:
                return httpx.Response(500, text="boom")
            if schema_id not in self.details:
                return httpx.Response(404, text="not found")
            return httpx.Response(200, json=self.details[schema_id])

        if segments == ["tenant", "unions"]:
            return httpx.Response(200, json={"results": self.unions, "_page": {"next": None}})

        if len(segments) == 3 and segments[1] == "unions":
            union_id = unquote(segments[2])
            self.union_inflight += 1
            self.max_union_inflight = max(self.max_union_inflight, self.union_inflight)
            try:
                if self.union_delay:
                    await asyncio.sleep(self.union_delay)
            finally:
                self.union_inflight -= 1
            if union_id in self.failing_ids or union_id not in self.union_details:
                return httpx.Response(500, text="boom")
            return httpx.Response(200, json=self.union_details[union_id])

        if len(segments) == 2 and segments[1] in ("fieldgroups", "classes", "datatypes"):
            return httpx.Response(200, json={"results": [], "_page": {"next": None}})

        return httpx.Response(404, text="unknown endpoint")

    def _page(self, entries: list[dict], request: httpx.Request) -> httpx.Response:
        limit = int(request.url.params.get("limit", "50"))
        offset = int(request.url.params.get("start", "0"))
        results = entries[offset: offset + limit]
        has_more = offset + limit < len(entries)
        next_cursor = str(offset + limit) if (has_more or (self.always_next and results)) else None
        return httpx.Response(200, json={"results": results, "_page": {"count": len(results), "next": next_cursor}})


@pytest.fixture(autouse=True)
def registry_env(monkeypatch):
    monkeypatch.setenv("REGISTRY_PLATFORM_BASE_URL", "https://platform.test")
    monkeypatch.setenv("REGISTRY_PLATFORM_API_KEY", "test-api-key")
    monkeypatch.setenv("REGISTRY_PLATFORM_IMS_ORG", "test-org@AdobeOrg")
    monkeypatch.setenv("REGISTRY_PLATFORM_SANDBOX_NAME", "dev")
    monkeypatch.delenv("APP_API_KEY", raising=False)


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=ColorLogger(logging.getLogger("tests")))


@pytest.fixture
def settings(tmp_path) -> DictionarySettings:
    return DictionarySettings(cache_dir=str(tmp_path), request_timeout=5.0)


@pytest.fixture
def fake_api() -> FakeRegistryApi:
    return FakeRegistryApi()


@pytest.fixture
def booted_client(helper_config):
    """Factory: async context manager yielding a registry client wired to a FakeRegistryApi."""

    @asynccontextmanager
    async def _booted(api: FakeRegistryApi):
        client = SchemaRegistryClientPlatform(
            helper_config=helper_config,
            auth_client=AuthClientStatic(helper_config=helper_config, token="test-token"),
        )
        await client.boot(transport=httpx.MockTransport(api.handler))
        try:
            yield client
        finally:
            await client.close()

    return _booted


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_service(helper_config, settings, fake_clock):
    """Factory building a SchemaDictionaryService on in-memory cache storages and the fake clock."""

    def _make(client, dictionary_storage=None, union_profile_storage=None):
        return SchemaDictionaryService(
            helper_config=helper_config,
            registry_client=client,
            settings=settings,
            dictionary_storage=dictionary_storage or MemoryCacheStorage(),
            union_profile_storage=union_profile_storage or MemoryCacheStorage(),
            clock=fake_clock,
        )

    return _make
