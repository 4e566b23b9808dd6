import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from country_sync.config import Settings
from country_sync.database import create_engine, create_session_maker, init_db
from country_sync.errors import register_exception_handlers
from country_sync.logging_config import configure_logging
from country_sync.reconciliation import Reconciler
from country_sync.renderer import SummaryRenderer
from country_sync.routes import router
from country_sync.scheduler import run_periodic_refresh
from country_sync.services import RefreshService
from country_sync.sources import ExternalSourceClient
from country_sync.store import CountryStore

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    source_client: Optional[ExternalSourceClient] = None,
    reconciler: Optional[Reconciler] = None,
    renderer: Optional[SummaryRenderer] = None,
) -> FastAPI:
    """
    Build the application and wire its collaborators.

    Anything not passed in is built from settings when the app starts.
    """
    settings = settings or Settings()
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def life_span(app: FastAPI):
        logger.info(f"Server is starting ({settings.ENVIRONMENT}) ...")
        engine = create_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
        await init_db(engine)

        store = CountryStore(create_session_maker(engine))
        summary_renderer = renderer or SummaryRenderer(
            settings.summary_image_path, top_n=settings.TOP_COUNTRIES
        )
        app.state.settings = settings
        app.state.store = store
        app.state.renderer = summary_renderer
        app.state.refresh_service = RefreshService(
            client=source_client
            or ExternalSourceClient(
                settings.COUNTRIES_API_URL,
                settings.EXCHANGE_API_URL,
                timeout_ms=settings.API_TIMEOUT,
            ),
            reconciler=reconciler or Reconciler(),
            store=store,
            renderer=summary_renderer,
            top_n=settings.TOP_COUNTRIES,
        )

        scheduler = None
        if settings.REFRESH_INTERVAL_SECONDS > 0:
            scheduler = asyncio.create_task(
                run_periodic_refresh(app.state.refresh_service, settings.REFRESH_INTERVAL_SECONDS)
            )

        yield

        if scheduler is not None:
            scheduler.cancel()
            try:
                await scheduler
            except asyncio.CancelledError:
                pass
        await engine.dispose()
        logger.info("Server has been stopped ...")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        debug=settings.DEBUG,
        lifespan=life_span,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"{request.method} {request.url.path}")
        return await call_next(request)

    register_exception_handlers(app, production=settings.is_production)
    app.include_router(router)
    return app


app = create_app()
