"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from floraveda.config import settings
from floraveda.middleware.error_handler import ErrorHandlerMiddleware
from floraveda.middleware.rate_limit import limiter
from floraveda.api.dependencies import get_consultation_store
from floraveda.api.v1.routers import consultations

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events using the modern FastAPI pattern.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Models: analysis={settings.analysis_model}, chat={settings.chat_model}")
    logger.info(f"Rate limit: {settings.rate_limit_requests} analyses/minute")
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set, relying on the SDK environment lookup")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    store = get_consultation_store()
    logger.info(f"Discarding {len(store)} consultations")
    store.clear()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Plant Doctor API powered by Google Gemini

    Upload a plant photo (or just its name) with your country to receive a
    structured care report, a health diagnosis and Vastu placement advice,
    then ask follow-up questions in a chat grounded in that report.

    ## Flow

    1. `POST /api/v1/consultations` starts a consultation (UPLOAD)
    2. `POST .../analysis` analyzes the plant (ANALYZING, then RESULTS or ERROR)
    3. `POST .../chat` streams the doctor's reply as NDJSON turn snapshots
    4. `POST .../chat/{turn_id}/retry` regenerates a failed reply in place
    5. `POST .../reset` returns to UPLOAD
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware with configurable origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add global error handling middleware
app.add_middleware(ErrorHandlerMiddleware)

# Include routers
app.include_router(consultations.router, prefix="/api/v1")


@app.get("/", tags=["health"])
async def root():
    """
    Root endpoint for health check.

    Returns:
        Status message
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("floraveda.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
