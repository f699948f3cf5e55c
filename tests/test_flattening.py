from shared.clients.registry.models.Schema import SchemaDetails
from shared.models.dictionary import FieldRecord, UnionProfileField
from services.schema_dictionary.flattening import (
    MAX_FLATTEN_DEPTH,
    extract_properties,
    flatten_schema_detail,
    flatten_schema_fields,
    flatten_union_profile_fields,
    select_common_attributes,
)


def _nested_chain(levels: int) -> dict:
    """{"l0": {"properties": {"l1": {...}}}} with the given number of levels."""
    node: dict = {"type": "string"}
    for level in reversed(range(levels)):
        node = {f"l{level}": node} if level == levels - 1 else {f"l{level}": {"type": "object", "properties": node}}
    return node


def _details(properties: dict, all_of: list | None = None, title: str = "Person") -> SchemaDetails:
    return SchemaDetails(engine="Platform", id="s1", title=title, properties=properties, all_of=all_of or [])


def test_records_carry_path_type_title_and_schema_name():
    fields: list[FieldRecord] = []
    flatten_schema_fields(
        {
            "person": {"properties": {"name": {"type": "string", "title": "Full name", "description": "Given and family name"}}},
            "age": {"type": "integer"},
        },
        fields,
        schema_name="Person",
    )

    assert [f.path for f in fields] == ["person", "person.name", "age"]
    person, name, age = fields
    assert person.type == "object"
    assert person.title == "person"
    assert name.title == "Full name"
    assert name.description == "Given and family name"
    assert age.type == "integer"
    assert age.description is None
    assert {f.schema_name for f in fields} == {"Person"}


def test_type_defaults_to_string_without_nested_properties():
    fields: list[FieldRecord] = []
    flatten_schema_fields({"nickname": {}}, fields, schema_name="Person")
    assert fields[0].type == "string"


def test_empty_properties_mapping_still_infers_object():
    fields: list[FieldRecord] = []
    flatten_schema_fields({"consents": {"properties": {}}, "tier": {"type": "string"}}, fields, schema_name="Person")

    assert [(f.path, f.type) for f in fields] == [("consents", "object"), ("tier", "string")]
    assert fields[1].enum is None


def test_metadata_keys_are_skipped():
    fields: list[FieldRecord] = []
    flatten_schema_fields(
        {"$id": {}, "meta:altId": {}, "xdm:sourceProperty": {}, "_tenant": {"properties": {"$ref": {}, "score": {"type": "number"}}}},
        fields,
        schema_name="Person",
    )
    assert [f.path for f in fields] == ["_tenant", "_tenant.score"]


def test_enum_is_capped_at_five_values():
    fields: list[FieldRecord] = []
    flatten_schema_fields(
        {"tier": {"type": "string", "enum": ["a", "b", "c", "d", "e", "f", "g"]}, "plain": {"type": "string", "enum": []}},
        fields,
        schema_name="Loyalty",
    )
    assert fields[0].enum == ["a", "b", "c", "d", "e"]
    assert fields[1].enum == []


def test_parent_is_emitted_before_children_and_children_before_siblings():
    fields: list[FieldRecord] = []
    flatten_schema_fields(
        {"a": {"properties": {"a1": {"properties": {"a11": {}}}, "a2": {}}}, "b": {}},
        fields,
        schema_name="Order",
    )
    assert [f.path for f in fields] == ["a", "a.a1", "a.a1.a11", "a.a2", "b"]


def test_depth_cap_stops_a_ten_level_chain():
    fields: list[FieldRecord] = []
    flatten_schema_fields(_nested_chain(10), fields, schema_name="Deep")

    assert len(fields) == MAX_FLATTEN_DEPTH
    assert fields[-1].path == "l0.l1.l2.l3.l4"


def test_root_all_of_branches_are_siblings_of_root_properties():
    fields: list[FieldRecord] = []
    schema_names: list[str] = []
    flatten_schema_detail(
        _details({"a": {"type": "string"}}, all_of=[{"properties": {"b": {"type": "string"}}}]),
        fields,
        schema_names,
    )

    assert [f.path for f in fields] == ["a", "b"]
    assert schema_names == ["Person"]


def test_field_all_of_branches_share_the_field_prefix():
    fields: list[FieldRecord] = []
    flatten_schema_fields(
        {"address": {"properties": {"city": {}}, "allOf": [{"properties": {"street": {}}}, {"title": "no properties"}]}},
        fields,
        schema_name="Person",
    )
    assert [f.path for f in fields] == ["address", "address.city", "address.street"]


def test_untitled_schema_is_recorded_as_unknown():
    fields: list[FieldRecord] = []
    schema_names: list[str] = []
    flatten_schema_detail(SchemaDetails(engine="Platform", id="s1", properties={"x": {}}), fields, schema_names)
    assert schema_names == ["Unknown Schema"]
    assert fields[0].schema_name == "Unknown Schema"


def test_flattening_is_idempotent():
    details = _details(
        {"person": {"properties": {"name": {"title": "Name"}, "tier": {"enum": ["gold", "silver"]}}}},
        all_of=[{"properties": {"consents": {"properties": {"marketing": {}}}}}],
    )
    first: list[FieldRecord] = []
    second: list[FieldRecord] = []
    flatten_schema_detail(details, first, [])
    flatten_schema_detail(details, second, [])
    assert first == second


def test_union_flattening_keeps_xdm_keys_and_records_query_path():
    fields: list[UnionProfileField] = []
    flatten_union_profile_fields(
        {"$id": {}, "meta:status": {}, "xdm:identityMap": {"type": "object"}, "person": {"properties": {"name": {}}}},
        fields,
    )

    assert [f.path for f in fields] == ["xdm:identityMap", "person", "person.name"]
    assert all(f.pql_path == f.path for f in fields)
    # no "object" inference in the union variant
    assert fields[1].type == "string"


def test_union_flattening_ignores_all_of():
    fields: list[UnionProfileField] = []
    flatten_union_profile_fields({"person": {"allOf": [{"properties": {"hidden": {}}}]}}, fields)
    assert [f.path for f in fields] == ["person"]


def test_common_attributes_match_case_insensitively_and_are_capped():
    fields = [UnionProfileField(path=p, pql_path=p, type="string", title=p) for p in
              ["person.name.firstName", "personalEmail.address", "identityMap", "loyalty.tier"]]
    assert [f.path for f in select_common_attributes(fields)] == ["person.name.firstName", "personalEmail.address", "loyalty.tier"]

    many = [UnionProfileField(path=f"emails.e{n}", pql_path=f"emails.e{n}", type="string", title="e") for n in range(30)]
    assert len(select_common_attributes(many)) == 20


def test_extract_properties_keeps_nesting_and_item_types():
    extracted = extract_properties({
        "tags": {"type": "array", "items": {"type": "string"}},
        "orders": {"type": "array", "items": {"properties": {}}},
        "person": {"type": "object", "title": "Person", "properties": {"name": {"type": "string"}}},
    })

    assert extracted["tags"]["items"] == "string"
    assert extracted["orders"]["items"] == "object"
    assert extracted["person"]["properties"]["name"] == {"type": "string", "title": None, "description": None}


def test_extract_properties_returns_empty_beyond_depth_limit():
    extracted = extract_properties(_nested_chain(10))
    node = extracted
    depth = 0
    while "properties" in node[f"l{depth}"]:
        node = node[f"l{depth}"]["properties"]
        depth += 1
        if not node:
            break
    assert node == {}
    assert depth == 6
