"""Schema router: schema registry pass-through and the cached schema dictionary."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from shared.clients.registry.models.Schema import CONTAINER_GLOBAL, CONTAINER_TENANT, SchemasListResponse
from shared.dependencies.auth import verify_api_key

schema_router = APIRouter(prefix="/api/schemas", dependencies=[Depends(verify_api_key)], tags=["Schemas"])


def _check_container(container: str) -> str:
    if container not in (CONTAINER_TENANT, CONTAINER_GLOBAL):
        raise HTTPException(status_code=400, detail=f"Unknown container '{container}'.")
    return container


def _listing_content(listing: SchemasListResponse) -> dict:
    return {
        "results": listing.results,
        "next": listing.nextCursor,
    }


async def _upstream(request: Request, call, what: str):
    """Await a registry call, mapping any remote failure to 502."""
    try:
        return await call
    except Exception as exc:
        request.app.state.logging.error("Fetching %s failed: %s", what, exc)
        raise HTTPException(status_code=502, detail=f"Fetching {what} failed: {exc}")


@schema_router.get("")
async def list_schemas(
    request: Request,
    container: str = CONTAINER_TENANT,
    limit: int = Query(default=50, ge=1, le=100),
    start: str | None = None,
) -> JSONResponse:
    """Return one page of a container's schema index."""
    registry = request.app.state.registry_client
    listing = await _upstream(
        request, registry.do_fetch_schemas_page(_check_container(container), limit=limit, start=start), "schemas"
    )
    return JSONResponse(content=_listing_content(listing))


@schema_router.get("/all")
async def list_all_schemas(request: Request, container: str = CONTAINER_TENANT) -> JSONResponse:
    """Return the complete schema index of a container. A partially listed index carries an error."""
    registry = request.app.state.registry_client
    index = await registry.do_fetch_all_schemas(container=_check_container(container))
    return JSONResponse(content={
        "results": index.results,
        "total": len(index.results),
        "error": index.error,
    })


@schema_router.get("/stats")
async def get_schema_stats(request: Request) -> JSONResponse:
    """Return the registry resource counts for the dashboard."""
    stats = await request.app.state.schema_service.get_schema_stats()
    return JSONResponse(content=stats.to_json_dict())


@schema_router.get("/unions")
async def list_unions(request: Request) -> JSONResponse:
    """Return the union schema listing."""
    registry = request.app.state.registry_client
    listing = await _upstream(request, registry.do_fetch_unions(), "unions")
    return JSONResponse(content=_listing_content(listing))


@schema_router.get("/unions/{union_id:path}")
async def get_union(request: Request, union_id: str) -> JSONResponse:
    """Return the fully expanded document of a union schema."""
    registry = request.app.state.registry_client
    document = await _upstream(request, registry.do_fetch_union_document(union_id), f"union {union_id}")
    return JSONResponse(content=document)


@schema_router.get("/extract-for-ai")
async def extract_for_ai(request: Request) -> JSONResponse:
    """Return all union schemas reduced to nested type/title/description trees."""
    extract = await _upstream(request, request.app.state.schema_service.extract_union_schemas_for_ai(), "unions")
    return JSONResponse(content=extract.to_json_dict())


@schema_router.get("/dictionary")
async def get_dictionary(request: Request, refresh: bool = False) -> JSONResponse:
    """Return the flattened field dictionary of all schemas.

    Always answers 200. A degraded dictionary is recognisable by its error key
    and empty field list.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        refresh (bool): Rebuild the dictionary even if the cache is fresh.
    """
    request.app.state.logging.info("Dictionary requested (refresh=%s)", refresh)
    dictionary = await request.app.state.schema_service.generate_dictionary(force_refresh=refresh)
    return JSONResponse(content=dictionary.to_json_dict())


@schema_router.get("/union-profile")
async def get_union_profile(request: Request, refresh: bool = False) -> JSONResponse:
    """Return the flattened profile union schema used for query authoring. Always answers 200."""
    profile = await request.app.state.schema_service.get_union_profile_schema(force_refresh=refresh)
    return JSONResponse(content=profile.to_json_dict())


@schema_router.get("/{schema_id:path}")
async def get_schema(request: Request, schema_id: str, container: str = CONTAINER_TENANT) -> JSONResponse:
    """Return the fully expanded document of a schema."""
    registry = request.app.state.registry_client
    document = await _upstream(
        request, registry.do_fetch_schema_document(schema_id, _check_container(container)), f"schema {schema_id}"
    )
    return JSONResponse(content=document)
