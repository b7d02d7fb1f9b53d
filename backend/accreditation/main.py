from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.cors import CORSMiddleware

from accreditation.api.router import api_router
from accreditation.config import settings
from accreditation.core.exceptions import (
    AccreditationError,
    accreditation_error_handler,
    database_error_handler,
    http_exception_handler,
)
from accreditation.core.logging import setup_logging
from accreditation.core.middleware import RequestIdMiddleware, TimingMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging(debug=settings.debug)
    logger.info(
        "starting_accreditation_engine",
        app_name=settings.app_name,
        reviewer_stage_enabled=settings.reviewer_stage_enabled,
        events_enabled=settings.events_enabled,
    )
    yield
    if settings.events_enabled:
        from accreditation.pipeline.producer import KafkaProducer

        KafkaProducer.reset()
    logger.info("shutting_down_accreditation_engine")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Journal Accreditation API",
        description="Weighted rubric scoring and multi-actor approval of journal assessments",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Middleware (last added runs first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(AccreditationError, accreditation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, database_error_handler)  # type: ignore[arg-type]

    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()
