import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from src.sushflix.api.api_v1.api import api_router
from src.sushflix.core.config import settings
from src.sushflix.core.error_handlers import (
    domain_exception_handler,
    general_exception_handler,
    sqlalchemy_exception_handler,
    validation_exception_handler,
)
from src.sushflix.core.errors import SushflixError
from src.sushflix.db.session import AsyncSessionLocal
from src.sushflix.services.storage_service import MediaStorageGateway, get_storage_gateway
from src.sushflix.utils.dates import utcnow
from src.sushflix.utils.storage import LocalObjectStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for FastAPI application."""
    logger.info(f"Environment: {os.getenv('ENV', 'not set')}")

    # Simple database connectivity check
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        logger.info("Database connection verified")
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        if os.getenv("ENV") == "production":
            raise

    yield


def mask_authorization(value: str) -> str:
    """Show only the start of a bearer token."""
    return value[:16] + "..." if len(value) > 16 else value


def create_app(storage_gateway: Optional[MediaStorageGateway] = None) -> FastAPI:
    """Create FastAPI application."""
    app = FastAPI(
        lifespan=lifespan,
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
    )
    app.state.storage_gateway = storage_gateway or get_storage_gateway()

    # The local backend hands out relative URLs, so the app serves them itself
    store = app.state.storage_gateway.store
    if isinstance(store, LocalObjectStore):
        logger.info(f"Serving local media from {store.base_path} at {store.public_base_url}")
        app.mount(store.public_base_url, StaticFiles(directory=store.base_path), name="uploads")

    # Health check endpoint
    @app.get("/healthz")
    async def health_check():
        """Health check endpoint for container orchestration."""
        try:
            async with AsyncSessionLocal() as session:
                await session.execute(text("SELECT 1"))

            return {
                "status": "healthy",
                "timestamp": utcnow().isoformat(),
                "service": settings.PROJECT_NAME,
            }
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            raise HTTPException(
                status_code=503,
                detail="Service unhealthy"
            )

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        start_time = time.time()

        # request bodies carry uploaded media and are never logged
        auth_header = request.headers.get("authorization")
        logger.info(
            f"{request.method} {request.url.path} "
            f"params={dict(request.query_params)} "
            f"auth={mask_authorization(auth_header) if auth_header else None}"
        )

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"in {process_time:.4f}s"
        )
        return response

    # Add exception handlers
    app.add_exception_handler(SushflixError, domain_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    environment = os.getenv("ENV", "development")

    if environment == "development":
        logger.info("Development mode: Allowing all CORS origins")
        cors_origins = ["*"]
    else:
        cors_origins = settings.BACKEND_CORS_ORIGINS.copy()

    logger.info("Final CORS Origins: %s", cors_origins)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
        max_age=600,  # Cache preflight requests for 10 minutes
    )

    # Include the routers
    app.include_router(api_router, prefix=settings.API_V1_STR)

    return app


app = create_app()

if __name__ == "__main__":
    host = "localhost"
    port = settings.SERVER_PORT
    uvicorn.run(app, host=host, port=port)
