"""
Student Registration Desk - FastAPI Application Entry Point.

This module:
1. Sets up structured JSON logging
2. Builds the storage engine, registration service and admin gate once
   per process (lifespan) and tears the storage engine down at exit
3. Implements request ID middleware (X-Request-ID header)
4. Registers the registration and student listing routes
5. Provides health check and root endpoints

Layout:
- routes/: API endpoint handlers
- services/: validation, registration pipeline, admin gate
- storage/: interchangeable storage engines
- models/: SQLAlchemy ORM models for the relational engines
- config.py: environment-driven settings
- logging_config.py: structured logging configuration
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from registrar import __version__
from registrar.config import Settings
from registrar.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from registrar.routes import register, students
from registrar.routes.register import error_response
from registrar.services.admin import AdminGate
from registrar.services.registration import RegistrationService
from registrar.services.validation import MISSING_FIELDS_MESSAGE
from registrar.storage import StorageEngine, build_storage

logger = get_logger("http")

SERVICE_NAME = "student-registration-desk"


def create_app(settings: Optional[Settings] = None,
               storage: Optional[StorageEngine] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Process configuration; read from the environment when omitted
        storage: Pre-built storage engine; built from settings when omitted
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = storage or build_storage(settings)
        await engine.startup()
        app.state.storage = engine
        app.state.registration_service = RegistrationService(
            engine, timeout_seconds=settings.storage_timeout_seconds)
        app.state.admin_gate = AdminGate(settings.admin_key)

        if settings.uses_default_admin_key:
            log_with_context(get_logger("admin"), "WARNING",
                             "ADMIN_KEY is not set; using the built-in default. Override it in production.")
        log_with_context(logger, "INFO", "Service started",
                         context={"backend": engine.name},
                         extra_data={"atomic_uniqueness": engine.atomic_uniqueness})
        try:
            yield
        finally:
            await engine.shutdown()
            log_with_context(logger, "INFO", "Service stopped", context={"backend": engine.name})

    app = FastAPI(
        title="Student Registration Desk",
        description=(
            "Self-service student registration with admission number validation, "
            "duplicate protection across interchangeable storage backends, "
            "and an admin-only listing of registrations."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # The public form is served from a different origin than the API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"]
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Bind a request ID for log context, echo it as X-Request-ID and log one access line."""
        req_id = generate_request_id()
        token = request_id_var.set(req_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = req_id
            log_with_context(logger, "INFO",
                f"{request.method} {request.url.path} {response.status_code}",
                extra_data={
                    "ip": request.client.host if request.client else "unknown",
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                })
            return response
        finally:
            request_id_var.reset(token)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Malformed JSON or non-string fields get the same answer as missing fields
        log_with_context(logger, "INFO", "Rejected malformed request body",
                         extra_data={"path": request.url.path, "errors": len(exc.errors())})
        return error_response(400, MISSING_FIELDS_MESSAGE)

    app.include_router(register.router, tags=["Registration"])
    app.include_router(students.router, tags=["Students"])

    @app.get("/health", tags=["Health"])
    def health_check(request: Request):
        """Liveness probe for container health checks."""
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": __version__,
            "storage_backend": request.app.state.storage.name,
        }

    @app.get("/", tags=["Root"])
    def root():
        return {
            "service": "Student Registration Desk",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
            "endpoints": {
                "register": "POST /api/register",
                "students": "GET /api/students (admin-key header required)"
            }
        }

    return app


def _create_default_app() -> FastAPI:
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    return create_app(settings)


# Entry point for `uvicorn registrar.main:app`
app = _create_default_app()
