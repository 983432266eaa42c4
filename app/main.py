"""
FastAPI application factory.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.api.router import api_router
from app.config import settings
from app.consent.documents import publish_documents
from app.content.faqs import seed_faqs
from app.models.database import async_session_factory, close_db, init_db
from app.observability.logging import bind_request_context, setup_logging
from app.storage.artifact_store import ArtifactStore

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    # Startup
    setup_logging()

    # Sentry init if configured
    if settings.SENTRY_DSN:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            integrations=[FastApiIntegration()],
            traces_sample_rate=0.1,
            send_default_pii=False,
        )

    if settings.DB_CREATE_ALL:
        await init_db()
        async with async_session_factory() as session:
            await seed_faqs(session)
            await session.commit()

    published = publish_documents(
        ArtifactStore(settings.CONSENT_DOCUMENTS_ROOT), settings.CONSENT_DOCUMENT_VERSION
    )
    logger.info(
        "startup_complete",
        version=settings.APP_VERSION,
        consent_documents_published=len(published),
    )

    yield

    # Shutdown
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="YUL Flight Claims",
        description="APPR flight-delay compensation claims: submission, eligibility, consent and payouts.",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = bind_request_context(
            request.headers.get("x-request-id"), path=request.url.path, method=request.method
        )
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    # Prometheus metrics endpoint
    if settings.PROMETHEUS_ENABLED:
        from prometheus_client import make_asgi_app
        metrics_app = make_asgi_app()
        app.mount("/metrics", metrics_app)

    # Include all API routes
    app.include_router(api_router)

    return app


# Application instance
app = create_app()
