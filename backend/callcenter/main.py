"""FastAPI application for the emergency call intake service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from callcenter.config import get_settings
from callcenter.database import check_db_ready, init_db
from callcenter.errors import (
    AllocationExhausted,
    CallNotFound,
    CallValidationError,
    InvalidTransition,
    PersistenceFailure,
)
from callcenter.limiter import limiter
from callcenter.routers import calls_router, geocode_router, health_router, stats_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting call intake service...")

    if settings.create_tables:
        await init_db()
        logger.info("Database tables created")

    try:
        await check_db_ready()
        logger.info("Database ready")
    except Exception as e:
        logger.error(f"Database not ready: {e}")
        raise

    yield

    logger.info("Call intake service shut down")


# Create FastAPI app
app = FastAPI(
    title="Call Center API",
    description="Emergency call intake, AI triage and dispatch lifecycle",
    version="0.1.0",
    lifespan=lifespan,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _validation_response(details: list[dict]) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Validation error", "details": details},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests as 400 with one entry per offending field."""
    details = [
        {
            "field": str(err["loc"][-1]) if err.get("loc") else "body",
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return _validation_response(details)


@app.exception_handler(CallValidationError)
async def call_validation_handler(request: Request, exc: CallValidationError):
    """Intake and update validation failures."""
    return _validation_response([{"field": e.field, "message": e.message} for e in exc.errors])


@app.exception_handler(CallNotFound)
async def not_found_handler(request: Request, exc: CallNotFound):
    return JSONResponse(status_code=404, content={"detail": "Call not found"})


@app.exception_handler(InvalidTransition)
async def invalid_transition_handler(request: Request, exc: InvalidTransition):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(AllocationExhausted)
@app.exception_handler(PersistenceFailure)
async def server_error_handler(request: Request, exc: Exception):
    """Store-side failures; details stay in the logs."""
    logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Include routers
app.include_router(health_router)
app.include_router(calls_router, prefix=settings.api_v1_prefix)
app.include_router(stats_router, prefix=settings.api_v1_prefix)
app.include_router(geocode_router, prefix=settings.api_v1_prefix)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Call Center API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "callcenter.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
