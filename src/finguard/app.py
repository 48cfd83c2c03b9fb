"""FastAPI application factory for Finguard."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from finguard.common.config import get_settings
from finguard.common.logging import setup_logging
from finguard.common.schemas import HealthResponse


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        from finguard.deps import get_db
        db = get_db()
        await db.init()
        await db.create_all()
        yield
        # Shutdown
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
        return HealthResponse(version=settings.api_version)

    # Mount routers
    from finguard.bootstrap.router import router as bootstrap_router
    from finguard.policy.router import router as policy_router
    from finguard.tenants.router import router as tenant_router
    from finguard.subscriptions.router import router as subscription_router
    from finguard.audit.router import router as audit_router
    from finguard.vault.router import router as credential_router

    prefix = settings.api_prefix
    app.include_router(bootstrap_router, prefix=prefix, tags=["bootstrap"])
    app.include_router(policy_router, prefix=prefix, tags=["policy"])
    app.include_router(tenant_router, prefix=prefix, tags=["tenants"])
    app.include_router(subscription_router, prefix=prefix, tags=["subscriptions"])
    app.include_router(audit_router, prefix=prefix, tags=["audit"])
    app.include_router(credential_router, prefix=prefix, tags=["credentials"])

    return app
