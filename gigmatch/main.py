from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gigmatch.dependencies import get_settings
from gigmatch.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    PerformanceMiddleware,
    RequestLoggingMiddleware,
)
from gigmatch.routers import recommendations
from gigmatch.utils.logging_config import configure_for_environment, get_logger

API_VERSION = "1.0.0"

# Logging before anything else logs
configure_for_environment()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info(
        f"GigMatch starting: model={settings.embedding.model_name} "
        f"cache={settings.embedding.cache_backend.value} threshold={settings.matching.match_threshold}"
    )

    try:
        from gigmatch.services.db import init_indexes
        await init_indexes()
    except Exception as e:
        # ranking still works without indexes, just slower
        logger.warning(f"Index initialization failed: {e}")

    if not settings.embedding.api_key:
        logger.warning("VOYAGE_API_KEY not set; every request will use fallback scoring")

    yield

    logger.info("GigMatch shutting down")


app = FastAPI(title="GigMatch API", version=API_VERSION, lifespan=lifespan)

# Starlette runs middleware last-added-first; the exception handler wraps the other two
app.add_middleware(PerformanceMiddleware, slow_request_threshold=2.0)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(ExceptionHandlerMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(recommendations.router, prefix="/api", tags=["recommendations"])


@app.get("/")
@app.head("/")
async def root():
    return {"service": "GigMatch API", "version": API_VERSION, "status": "ok"}


@app.get("/health")
@app.head("/health")
async def health_check():
    """Liveness check; does not touch Mongo or the embedding provider."""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}
