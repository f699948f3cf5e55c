"""Generic schema registry models, backend-independent."""

from typing import Any

from pydantic import BaseModel

CONTAINER_TENANT = "tenant"
CONTAINER_GLOBAL = "global"


class SchemaSummary(BaseModel):
    """
    Represents a single index entry of a container listing. Only carries what
    is needed to drive the detail fetch.
    """
    engine: str
    id: str
    alt_id: str | None = None
    title: str | None = None
    container: str = CONTAINER_TENANT

    @property
    def fetch_id(self) -> str:
        """The identifier to request details with. The alternate id is preferred when present."""
        return self.alt_id or self.id


class SchemaDetails(SchemaSummary):
    """
    Represents the full document of one schema. Property values are kept as raw
    dicts since the definition tree is self-similar and of unbounded depth.
    """
    description: str | None = None
    type: str | None = None
    properties: dict[str, Any] = {}
    all_of: list[dict[str, Any]] = []
    required: list[str] = []


class SchemasListResponse(BaseModel):
    """
    Represents one page of a container listing. results keeps the raw registry
    entries in server order, including those schemas could not be parsed from.
    """
    engine: str
    container: str
    schemas: list[SchemaSummary] = []
    results: list[dict[str, Any]] = []
    nextCursor: str | None = None


class SchemaIndex(BaseModel):
    """
    Represents the full crawled index of one container. If pagination had to be
    aborted, error carries the reason and schemas holds what was collected so far.
    """
    container: str
    schemas: list[SchemaSummary] = []
    results: list[dict[str, Any]] = []
    pages: int = 0
    error: str | None = None
