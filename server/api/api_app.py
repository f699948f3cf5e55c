"""FastAPI application entry point for the schema dictionary API."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import os
from server.api.routers.SchemaRouter import schema_router
from services.schema_dictionary.SchemaDictionaryService import SchemaDictionaryService
from shared.clients.auth.AuthClientStatic import AuthClientStatic
from shared.clients.registry.platform.SchemaRegistryClientPlatform import SchemaRegistryClientPlatform
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.config import DictionarySettings

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown."""
    app.state.logging = logging
    app.state.config = HelperConfig(logger=app.state.logging)

    # Initialise clients
    registry_client = SchemaRegistryClientPlatform(
        helper_config=app.state.config,
        auth_client=AuthClientStatic(helper_config=app.state.config),
    )
    await registry_client.boot()

    # The dictionary is best-effort reference data, an unreachable registry must not block startup
    try:
        await registry_client.do_healthcheck()
    except Exception as exc:
        app.state.logging.warning("Schema registry healthcheck failed: %s", exc)

    # Wire up services
    app.state.registry_client = registry_client
    app.state.schema_service = SchemaDictionaryService(
        helper_config=app.state.config,
        registry_client=registry_client,
        settings=DictionarySettings.from_config(app.state.config),
    )

    app.state.logging.info("Schema dictionary API ready.")
    yield

    # Shutdown
    await registry_client.close()
    app.state.logging.info("Schema dictionary API shut down.")


app = FastAPI(
    title="Schema Dictionary",
    description="Schema registry proxy and cached field dictionary for the platform dashboard.",
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(schema_router)


@app.get("/health", tags=["Health"])
async def health() -> dict:
    return {"status": "ok", "version": app_version}


# Server Start
if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", "8000"))
    logging.info(f"Starting schema dictionary API v{app_version} on port {port}...")
    uvicorn.run(app, host="0.0.0.0", port=port)
