import pytest

from services.schema_dictionary.DictionaryBuilder import DictionaryBuilder


def _spy_batches(builder: DictionaryBuilder, monkeypatch) -> list[tuple[str, int]]:
    """Record (container, size) of every processed batch."""
    batches: list[tuple[str, int]] = []
    original = builder._process_batch

    async def spy(batch, fields, schema_names):
        batches.append((batch[0].container, len(batch)))
        await original(batch, fields, schema_names)

    monkeypatch.setattr(builder, "_process_batch", spy)
    return batches


@pytest.mark.asyncio
async def test_tenant_only_scenario_runs_two_batches(booted_client, fake_api, helper_config, settings, monkeypatch):
    fake_api.add_schemas("tenant", 25)

    async with booted_client(fake_api) as client:
        builder = DictionaryBuilder(helper_config, client, settings)
        batches = _spy_batches(builder, monkeypatch)
        dictionary = await builder.do_build()

    assert batches == [("tenant", 20), ("tenant", 5)]
    assert dictionary.total_schemas == 25
    assert len(dictionary.fields) == 25
    assert all(name.startswith("Tenant Schema") for name in dictionary.schema_names)
    assert dictionary.error is None
    assert dictionary.cached is False


@pytest.mark.asyncio
async def test_tenant_is_processed_before_global(booted_client, fake_api, helper_config, settings):
    fake_api.add_schemas("tenant", 3)
    fake_api.add_schemas("global", 2)

    async with booted_client(fake_api) as client:
        dictionary = await DictionaryBuilder(helper_config, client, settings).do_build()

    assert dictionary.schema_names == [
        "Tenant Schema 0", "Tenant Schema 1", "Tenant Schema 2", "Global Schema 0", "Global Schema 1",
    ]
    assert dictionary.total_schemas == 5


@pytest.mark.asyncio
async def test_tenant_details_are_fetched_while_global_is_still_listing(booted_client, fake_api, helper_config, settings):
    fake_api.add_schemas("tenant", 2)
    fake_api.add_schemas("global", 1)
    fake_api.listing_delays = {"global": 0.3}

    async with booted_client(fake_api) as client:
        dictionary = await DictionaryBuilder(helper_config, client, settings).do_build()

    events = fake_api.events
    global_listed = events.index(("list-end", "global"))
    tenant_details = [i for i, event in enumerate(events) if event == ("detail", "tenant")]
    global_details = [i for i, event in enumerate(events) if event == ("detail", "global")]

    assert events.index(("list-start", "global")) < tenant_details[0]
    assert len(tenant_details) == 2
    assert max(tenant_details) < global_listed
    assert global_details and min(global_details) > global_listed
    assert dictionary.total_schemas == 3
    assert dictionary.schema_names[-1] == "Global Schema 0"


@pytest.mark.asyncio
async def test_failed_detail_fetches_are_skipped(booted_client, fake_api, helper_config, settings):
    entries = fake_api.add_schemas("tenant", 20)
    fake_api.failing_ids = {entries[3]["meta:altId"], entries[11]["meta:altId"]}

    async with booted_client(fake_api) as client:
        dictionary = await DictionaryBuilder(helper_config, client, settings).do_build()

    assert len(dictionary.schema_names) == 18
    assert entries[3]["title"] not in dictionary.schema_names
    assert entries[11]["title"] not in dictionary.schema_names
    assert len(dictionary.fields) == 18
    assert dictionary.error is None


@pytest.mark.asyncio
async def test_slow_detail_fetch_times_out_and_is_skipped(booted_client, fake_api, helper_config, settings):
    entries = fake_api.add_schemas("tenant", 3)
    fake_api.slow_ids = {entries[1]["meta:altId"]: 1.0}
    fast_settings = settings.model_copy(update={"request_timeout": 0.05})

    async with booted_client(fake_api) as client:
        dictionary = await DictionaryBuilder(helper_config, client, fast_settings).do_build()

    assert dictionary.schema_names == ["Tenant Schema 0", "Tenant Schema 2"]


@pytest.mark.asyncio
async def test_field_count_matches_flattened_nodes(booted_client, fake_api, helper_config, settings):
    properties = {
        "person": {"properties": {"name": {"properties": {"firstName": {}, "lastName": {}}}}},
        "meta:class": {},
    }
    fake_api.add_schemas("tenant", 2, properties=properties)
    fake_api.add_schemas("global", 1)

    async with booted_client(fake_api) as client:
        dictionary = await DictionaryBuilder(helper_config, client, settings).do_build()

    # 4 nodes per tenant schema, 1 for the default global schema
    assert len(dictionary.fields) == 9
    assert [f.path for f in dictionary.fields[:4]] == ["person", "person.name", "person.name.firstName", "person.name.lastName"]
    assert dictionary.fields[-1].schema_name == "Global Schema 0"


@pytest.mark.asyncio
async def test_unreachable_registry_yields_error_dictionary(booted_client, fake_api, helper_config, settings):
    fake_api.failing_containers = {"tenant", "global"}

    async with booted_client(fake_api) as client:
        dictionary = await DictionaryBuilder(helper_config, client, settings).do_build()

    assert dictionary.error is not None
    assert dictionary.fields == []
    assert dictionary.schema_names == []
    assert dictionary.total_schemas == 0


@pytest.mark.asyncio
async def test_one_unreachable_container_is_not_a_total_failure(booted_client, fake_api, helper_config, settings):
    fake_api.add_schemas("tenant", 2)
    fake_api.failing_containers = {"global"}

    async with booted_client(fake_api) as client:
        dictionary = await DictionaryBuilder(helper_config, client, settings).do_build()

    assert dictionary.error is None
    assert dictionary.total_schemas == 2


@pytest.mark.asyncio
async def test_unexpected_exception_is_reported_not_raised(booted_client, fake_api, helper_config, settings, monkeypatch):
    fake_api.add_schemas("tenant", 1)

    async with booted_client(fake_api) as client:
        builder = DictionaryBuilder(helper_config, client, settings)

        async def explode(batch, fields, schema_names):
            raise RuntimeError("flattening exploded")

        monkeypatch.setattr(builder, "_process_batch", explode)
        dictionary = await builder.do_build()

    assert dictionary.error == "flattening exploded"
    assert dictionary.fields == []
