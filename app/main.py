"""FastAPI application entry point for the Adaptive Survey Service.

This module initializes the FastAPI application, sets up logging and the
database schema, registers routers, and maps domain errors onto HTTP
responses.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.domain.errors import DomainError
from app.logging_config import setup_logging, get_logger
from app.models.database import init_db
from app.routes import dynamic_questions, health, responses, surveys, translation
from app.routes.dependencies import status_for

# Initialize logger (will be configured during startup)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup:
    - Configure logging
    - Create database tables
    - Log application startup information

    Shutdown:
    - Log shutdown event

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    settings = get_settings()
    setup_logging()
    init_db()

    logger.info(
        f"Adaptive Survey Service starting - "
        f"Environment: {settings.environment}, "
        f"Log Level: {settings.log_level}, "
        f"Database: {settings.database_url.split('@')[-1] if '@' in settings.database_url else 'configured'}, "
        f"Generator: {settings.generator_provider}, "
        f"Translation: {settings.translation_provider}, "
        f"Version: {settings.git_commit_sha}"
    )

    yield

    logger.info("Adaptive Survey Service shutting down")


app = FastAPI(
    title="Adaptive Survey Service",
    description="Surveys whose follow-up questions are generated from the respondent's answers",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict:
    """Root endpoint with basic API information.

    Returns:
        dict: API information and status
    """
    settings = get_settings()
    return {
        "service": "Adaptive Survey Service",
        "version": "1.0.0",
        "environment": settings.environment,
        "status": "operational"
    }


# Register routers
app.include_router(health.router, tags=["Health"])
app.include_router(surveys.router, tags=["Surveys"])
app.include_router(dynamic_questions.router, tags=["Dynamic Questions"])
app.include_router(responses.router, tags=["Responses"])
app.include_router(translation.router, tags=["Translation"])


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Map domain errors raised by routes or services to HTTP responses.

    Args:
        request: FastAPI request object
        exc: Domain error that was raised

    Returns:
        JSONResponse: Error body with the domain error code
    """
    status_code = status_for(exc.code)
    logger.warning(
        f"{type(exc).__name__} for {request.method} {request.url.path}: {exc.message}",
        extra={"error_code": exc.code, "status_code": status_code},
    )
    return JSONResponse(status_code=status_code, content={"detail": exc.to_dict()})


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled exceptions.

    Logs all unhandled exceptions and returns a generic error response
    to prevent leaking sensitive information.

    Args:
        request: FastAPI request object
        exc: Exception that was raised

    Returns:
        JSONResponse: Generic error response
    """
    logger.error(
        f"Unhandled exception for {request.method} {request.url}: {exc}",
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later."
        }
    )
