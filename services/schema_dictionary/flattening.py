"""Flattening of nested schema property trees into dotted-path field records.

All functions here are pure: they only append to the accumulators passed in.
"""

from typing import Any

from shared.clients.registry.models.Schema import SchemaDetails
from shared.models.dictionary import FieldRecord, UnionProfileField

MAX_FLATTEN_DEPTH = 5   # nesting levels emitted below a schema root (root is depth 0)
MAX_ENUM_VALUES = 5     # enum values kept per field record
MAX_EXTRACT_DEPTH = 5   # nesting levels kept by the nested union extraction

DICTIONARY_SKIP_PREFIXES = ("$", "meta:", "xdm:")
UNION_SKIP_PREFIXES = ("$", "meta:")

COMMON_ATTRIBUTE_HINTS = ["email", "firstName", "lastName", "birthDate", "gender", "phone", "address", "loyalty", "tier"]
MAX_COMMON_ATTRIBUTES = 20


def _join_path(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def flatten_schema_fields(
    properties: Any,
    fields: list[FieldRecord],
    schema_name: str,
    prefix: str = "",
    depth: int = 0,
) -> None:
    """Flatten a properties mapping into field records, depth-first and pre-order.

    A node's own properties are flattened under its path, followed by the
    properties of each of its allOf branches under the same path. Descent stops
    at MAX_FLATTEN_DEPTH.

    Args:
        properties (Any): Mapping of field name to definition. Anything else is ignored.
        fields (list[FieldRecord]): Accumulator receiving the records.
        schema_name (str): Title of the schema the fields belong to.
        prefix (str): Dotted path of the parent node, empty at the root.
        depth (int): Nesting level of the nodes in properties.
    """
    if depth >= MAX_FLATTEN_DEPTH or not isinstance(properties, dict):
        return

    for key, value in properties.items():
        if key.startswith(DICTIONARY_SKIP_PREFIXES):
            continue
        if not isinstance(value, dict):
            value = {}

        field_path = _join_path(prefix, key)
        nested = value.get("properties")
        enum = value.get("enum")

        fields.append(
            FieldRecord(
                path=field_path,
                type=value.get("type") or ("object" if isinstance(nested, dict) else "string"),
                title=value.get("title") or key,
                description=value.get("description") or None,
                schema_name=schema_name,
                enum=list(enum)[:MAX_ENUM_VALUES] if isinstance(enum, list) else None,
            )
        )

        if nested:
            flatten_schema_fields(nested, fields, schema_name, prefix=field_path, depth=depth + 1)
        for branch in value.get("allOf") or []:
            if isinstance(branch, dict) and branch.get("properties"):
                flatten_schema_fields(branch["properties"], fields, schema_name, prefix=field_path, depth=depth + 1)


def flatten_schema_detail(details: SchemaDetails, fields: list[FieldRecord], schema_names: list[str]) -> None:
    """Flatten one schema document into the shared accumulators.

    The schema title is recorded in schema_names, then the root properties and
    the properties of every root allOf branch are flattened at the root path.

    Args:
        details (SchemaDetails): The fully expanded schema.
        fields (list[FieldRecord]): Accumulator receiving the records.
        schema_names (list[str]): Accumulator receiving the processed schema title.
    """
    schema_name = details.title or "Unknown Schema"
    schema_names.append(schema_name)

    flatten_schema_fields(details.properties, fields, schema_name)
    for branch in details.all_of:
        if branch.get("properties"):
            flatten_schema_fields(branch["properties"], fields, schema_name)


def flatten_union_profile_fields(
    properties: Any,
    fields: list[UnionProfileField],
    prefix: str = "",
    depth: int = 0,
) -> None:
    """Flatten a union schema's properties into profile query paths.

    Unlike flatten_schema_fields, only "$" and "meta:" keys are skipped, allOf
    branches are not followed and the type defaults to "string".
    """
    if depth >= MAX_FLATTEN_DEPTH or not isinstance(properties, dict):
        return

    for key, value in properties.items():
        if key.startswith(UNION_SKIP_PREFIXES):
            continue
        if not isinstance(value, dict):
            value = {}

        field_path = _join_path(prefix, key)
        fields.append(
            UnionProfileField(
                path=field_path,
                pql_path=field_path,
                type=value.get("type") or "string",
                title=value.get("title") or key,
                description=value.get("description") or None,
            )
        )

        if value.get("properties"):
            flatten_union_profile_fields(value["properties"], fields, prefix=field_path, depth=depth + 1)


def select_common_attributes(fields: list[UnionProfileField]) -> list[UnionProfileField]:
    """Pick the frequently used profile attributes (email, names, ...) by path substring."""
    hints = [hint.lower() for hint in COMMON_ATTRIBUTE_HINTS]
    common = [field for field in fields if any(hint in field.path.lower() for hint in hints)]
    return common[:MAX_COMMON_ATTRIBUTES]


def extract_properties(properties: Any, depth: int = 0) -> dict:
    """Reduce a property tree to nested {type, title, description} nodes.

    Array nodes keep the item type under "items". Levels deeper than
    MAX_EXTRACT_DEPTH come back empty.
    """
    if depth > MAX_EXTRACT_DEPTH or not isinstance(properties, dict):
        return {}

    extracted: dict = {}
    for key, value in properties.items():
        if not isinstance(value, dict):
            value = {}
        node = {
            "type": value.get("type"),
            "title": value.get("title"),
            "description": value.get("description"),
        }
        if value.get("properties"):
            node["properties"] = extract_properties(value["properties"], depth + 1)
        if value.get("items"):
            items = value["items"]
            node["items"] = (items.get("type") if isinstance(items, dict) else None) or "object"
        extracted[key] = node
    return extracted
