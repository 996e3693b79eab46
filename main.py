"""
Ranked sign-up allocation service - FastAPI backend
Main application entry point
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from allocator.core.config import Settings, settings as default_settings
from allocator.core.db import Database
from allocator.core.exceptions import AllocatorException
from allocator.api import routes_admin, routes_participant, routes_public
from allocator.services.notifier import CodeNotifier, LoggingNotifier
from allocator.utils.responses import error_response
from allocator.utils.security import RateLimiter

# Configure logging
logging.basicConfig(level=default_settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, notifier: Optional[CodeNotifier] = None) -> FastAPI:
    """Build the application; storage clients are created in the lifespan"""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan management"""
        app.state.database = None
        app.state.firestore = None
        if settings.USE_FIREBASE:
            from allocator.services.firebase_client import build_firestore_client
            app.state.firestore = build_firestore_client(settings)
            logger.info("Using Firestore storage")
        else:
            app.state.database = Database(settings.DATABASE_URL)
            app.state.database.create_all()
            logger.info("Database tables created")
        yield
        if app.state.database is not None:
            app.state.database.dispose()
        logger.info("Application shutdown")

    app = FastAPI(
        title="Ranked Sign-up Allocator",
        description="Capacity-constrained sign-ups with first-come-first-served allocation",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.notifier = notifier or LoggingNotifier()
    app.state.rate_limiter = RateLimiter(settings.RATE_LIMIT_PER_MINUTE)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AllocatorException)
    async def handle_domain_error(request: Request, exc: AllocatorException):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.error_code}")
        return error_response(
            message=exc.message,
            error_code=exc.error_code,
            details=exc.details,
            status_code=exc.status_code
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(part) for part in err["loc"] if part != "body"), "message": err["msg"]}
            for err in exc.errors()
        ]
        first = errors[0] if errors else {"field": "", "message": "Invalid request body"}
        message = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
        return error_response(
            message=message,
            error_code="VALIDATION_ERROR",
            details=errors,
            status_code=400
        )

    # Include routers
    app.include_router(routes_public.router, tags=["public"])
    app.include_router(routes_participant.router, tags=["participant"])
    app.include_router(routes_admin.router, tags=["admin"])

    return app


app = create_app()

# Note: Run this ASGI app directly with Uvicorn or Hypercorn. For Gunicorn,
# use `uvicorn.workers.UvicornWorker` instead of wrapping the app.

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )
