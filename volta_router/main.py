import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from volta_router.config import PROCESSORS_BY_COUNTRY, ProcessorCatalog, Settings, settings
from volta_router.engine.errors import RoutingError
from volta_router.engine.routing_engine import RoutingEngine
from volta_router.middleware import logging_middleware, trace_id_middleware
from volta_router.routers import data, health, processors, routing
from volta_router.storage.store import InMemoryStore

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    app_settings: Settings = settings,
    catalog: ProcessorCatalog = PROCESSORS_BY_COUNTRY,
) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # --- Startup ---
        logger.info("Volta Router starting up...")

        store = InMemoryStore()
        engine = RoutingEngine(store=store, settings=app_settings, catalog=catalog)

        app.state.settings = app_settings
        app.state.store = store
        app.state.routing_engine = engine

        logger.info(
            f"Environment: {app_settings.ENVIRONMENT} | "
            f"countries: {list(catalog)} | "
            f"window={app_settings.TIME_WINDOW_SECONDS:g}s | "
            f"high_risk<{app_settings.HIGH_RISK_THRESHOLD:g}% | "
            f"medium_risk<{app_settings.MEDIUM_RISK_THRESHOLD:g}% | "
            f"cb_threshold<{app_settings.CB_THRESHOLD:g}% | "
            f"cb_timeout={app_settings.CB_TIMEOUT_SECONDS:g}s"
        )

        yield

        # --- Shutdown ---
        logger.info(
            f"Volta Router shutting down. Final state: "
            f"{store.ledger.count_all()} transactions | "
            f"{store.decisions.count()} routing decisions"
        )

    app = FastAPI(
        title="Volta Smart Router",
        description=(
            "Routes payments to the processor with the best recent approval rate "
            "per country, with per-processor circuit breaking and failover ranking."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Registered last runs first: trace id is set before the access log line.
    app.middleware("http")(logging_middleware)
    app.middleware("http")(trace_id_middleware)

    prefix = app_settings.api_prefix
    app.include_router(health.router, tags=["Health"])
    app.include_router(routing.router, prefix=prefix, tags=["Routing"])
    app.include_router(processors.router, prefix=prefix, tags=["Processor Health"])
    app.include_router(data.router, prefix=prefix, tags=["Data"])

    @app.exception_handler(RoutingError)
    async def routing_error_handler(request: Request, exc: RoutingError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.code, "message": str(exc)},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception on %s %s: %s",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "message": "An internal error occurred. Please try again later."},
        )

    return app


app = create_app()


def run() -> None:
    uvicorn.run("volta_router.main:app", host="0.0.0.0", port=settings.PORT)
