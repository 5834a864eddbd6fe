"""FastAPI application factory for Metabase-Tenancy."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from metabase_tenancy.common.config import get_settings
from metabase_tenancy.common.schemas import HealthResponse


def create_app() -> FastAPI:
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        from metabase_tenancy.deps import get_db, get_metabase_client
        db = get_db()
        await db.init()
        await db.create_all()
        yield
        # Shutdown
        await get_metabase_client().aclose()
        await db.close()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    async def health():
        from metabase_tenancy.deps import get_db
        from metabase_tenancy.mappings.service import MappingService

        db = get_db()
        if not await db.ping():
            return HealthResponse(status="degraded", version=settings.api_version)
        async with db.get_session() as session:
            count = await MappingService().count(session)
        return HealthResponse(
            version=settings.api_version,
            db_state="Connected",
            projects_count=count,
        )

    # Mount routers
    from metabase_tenancy.provisioning.router import router as provisioning_router
    from metabase_tenancy.mappings.router import router as mappings_router

    prefix = settings.api_prefix
    app.include_router(provisioning_router, prefix=prefix, tags=["provisioning"])
    app.include_router(mappings_router, prefix=prefix, tags=["mappings"])

    return app
