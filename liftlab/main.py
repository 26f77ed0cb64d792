from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from liftlab import __version__
from liftlab.api.v1.router import api_router
from liftlab.config import get_settings
from liftlab.core.exceptions import EngineError
from liftlab.core.logging import configure_logging
from liftlab.middleware import TelemetryMiddleware
from liftlab.services.engine import ExperimentEngine

logger = structlog.get_logger("liftlab")


def create_app(engine: Optional[ExperimentEngine] = None) -> FastAPI:
    settings = get_settings()
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("startup", app=settings.APP_NAME, environment=settings.ENVIRONMENT)
        yield
        logger.info("shutdown", tests=len(app.state.engine.list_tests()))

    app = FastAPI(
        title=settings.APP_NAME,
        description="Experiment statistics, attribution and campaign performance engine",
        version=__version__,
        docs_url=f"{settings.API_V1_PREFIX}/docs",
        redoc_url=f"{settings.API_V1_PREFIX}/redoc",
        lifespan=lifespan,
    )
    app.state.engine = engine or ExperimentEngine()

    # CORS middleware
    if settings.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_middleware(TelemetryMiddleware)

    @app.exception_handler(EngineError)
    async def engine_error_handler(request: Request, exc: EngineError):
        logger.warning(
            "engine_error",
            error_type=type(exc).__name__,
            error=exc.message,
            path=request.url.path,
            **exc.context,
        )
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.get("/")
    async def root():
        return {
            "app": settings.APP_NAME,
            "version": __version__,
            "environment": settings.ENVIRONMENT,
        }

    return app


app = create_app()
