"""Pydantic models for the schema dictionary artifacts served to the frontend.

Attributes are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self, exclude: set[str] | None = None) -> dict:
        """Dump to a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)


class FieldRecord(CamelModel):
    """One flattened node of a schema's property tree."""

    path: str
    type: str
    title: str
    description: str | None = None
    schema_name: str
    enum: list[Any] | None = None


class Dictionary(CamelModel):
    """The aggregated field dictionary of all schemas in both containers."""

    generated_at: datetime
    total_schemas: int = 0
    schema_names: list[str] = []
    fields: list[FieldRecord] = []
    processing_time_seconds: float = 0.0
    cached: bool = False
    error: str | None = None


class UnionProfileField(CamelModel):
    """A flattened profile attribute, addressable in profile query expressions via pql_path."""

    path: str
    pql_path: str
    type: str
    title: str
    description: str | None = None


class UnionProfileSchema(CamelModel):
    """The flattened profile union schema used for query expression authoring."""

    extracted_at: datetime | None = None
    sandbox: str | None = None
    profile_title: str | None = None
    total_fields: int = 0
    fields: list[UnionProfileField] = []
    common_attributes: list[UnionProfileField] = []
    cached: bool = False
    error: str | None = None


class ExtractedUnionSchema(CamelModel):
    id: str
    title: str | None = None
    description: str | None = None
    type: str | None = None
    properties: dict[str, Any] = {}
    required: list[str] = []


class UnionSchemaExtract(CamelModel):
    """All union schemas reduced to nested type/title/description trees, as AI context."""

    extracted_at: datetime
    sandbox: str | None = None
    schemas: list[ExtractedUnionSchema] = []


class SchemaStats(CamelModel):
    """Registry resource counts for the dashboard."""

    tenant_id: str | None = None
    tenant_schemas: int = 0
    global_schemas: int = 0
    total_schemas: int = 0
    unions: int = 0
    field_groups: int = 0
    classes: int = 0
    data_types: int = 0
    error: str | None = None
