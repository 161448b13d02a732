from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gradeflow.api.errors import install_error_handlers
from gradeflow.api.evaluations import router as evaluations_router
from gradeflow.api.health import router as health_router
from gradeflow.api.metrics_endpoint import router as metrics_router
from gradeflow.api.professor import router as professor_router
from gradeflow.api.profile import router as profile_router
from gradeflow.api.student import router as student_router
from gradeflow.core.config import SETTINGS
from gradeflow.core.logging import setup_logging
from gradeflow.db.redis import check_redis
from gradeflow.middleware.metrics import MetricsMiddleware
from gradeflow.middleware.request_context import (
    RequestContextMiddleware,
    install_request_context_filter,
)
from gradeflow.services.container import Services, build_services

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_request_context_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    services: Services = app.state.services
    if services.redis is not None:
        await check_redis(services.redis)
    try:
        yield
    finally:
        await services.aclose()
        logger.info("Services shut down")


def create_app(services: Services | None = None) -> FastAPI:
    app = FastAPI(
        title="gradeflow",
        lifespan=lifespan,
        docs_url="/docs" if SETTINGS.is_dev else None,
        redoc_url="/redoc" if SETTINGS.is_dev else None,
    )
    app.state.services = services or build_services(SETTINGS)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Last added runs first: RequestContext → Metrics → CORS → route.
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    install_error_handlers(app)

    app.include_router(metrics_router)
    app.include_router(health_router)
    app.include_router(profile_router)
    app.include_router(professor_router)
    app.include_router(evaluations_router)
    app.include_router(student_router)
    return app


app = create_app()

logger.info(
    "gradeflow started  env=%s log_level=%s port=%d inference=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "huggingface" if SETTINGS.huggingface_enabled else "heuristic",
)
if not SETTINGS.jwt_public_key:
    logger.warning("JWT_PUBLIC_KEY not set, every bearer token will be rejected")
