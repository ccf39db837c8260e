from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import resource
import time
import uvicorn
import logging

from coloring_app.auth.verifier import build_verifier
from coloring_app.exceptions import add_exception_handlers
from coloring_app.gallery.store import DynamoGalleryStore
from coloring_app.generation.backends import OpenAIImageBackend, PlaceholderImageBackend
from coloring_app.generation.service import ImageGenerator
from coloring_app.prompting.refiner import OpenAIPromptRefiner, TemplatePromptRefiner
from coloring_app.providers.openai_client import build_client, has_api_key
from coloring_app.rate_limit import GenerationRateLimiter
from coloring_app.routers.gallery import router as gallery_router
from coloring_app.routers.generation import router as generation_router
from coloring_app.settings import settings
from coloring_app.storage.dynamodb import DynamoDBService
from coloring_app.storage.s3 import S3Service

logging.basicConfig(level=settings.log_level.upper())
log = logging.getLogger("coloring-book-api")


def build_generation_services(app: FastAPI):
    """Real OpenAI tiers when a key is configured, local placeholders otherwise."""
    if has_api_key():
        client = build_client()
        app.state.refiner = OpenAIPromptRefiner(client)
        app.state.image_generator = ImageGenerator(
            OpenAIImageBackend(client, settings.openai_primary_image_model),
            OpenAIImageBackend(client, settings.openai_fallback_image_model),
        )
        app.state.openai_mode = "configured"
    else:
        log.warning("OPENAI_API_KEY is not set, serving template prompts and placeholder images")
        app.state.refiner = TemplatePromptRefiner()
        app.state.image_generator = ImageGenerator(
            PlaceholderImageBackend("placeholder"),
            PlaceholderImageBackend("placeholder-fallback"),
        )
        app.state.openai_mode = "mock"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
        Async context manager for FastAPI application lifecycle events.
        Initializes and closes resources (S3, DynamoDB, model clients) for the application.
    """
    app.state.started_at = time.monotonic()
    # Initialize resources
    app.state.s3 = S3Service()
    app.state.db = DynamoDBService()
    app.state.gallery = DynamoGalleryStore(app.state.db, app.state.s3)
    build_generation_services(app)
    app.state.verifier = build_verifier()
    app.state.rate_limiter = GenerationRateLimiter(
        settings.generation_rate_limit, settings.generation_rate_window_seconds
    )
    yield
    # Cleanup resources
    app.state.s3.close()
    app.state.db.close()

# Initialize App
app = FastAPI(
    title=settings.app_title,
    version=settings.app_version,
    lifespan=lifespan,
    description="Turns short ideas into printable coloring pages",
)

# Add exception handlers
add_exception_handlers(app)

# CORS - Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Logs every request with its status and timing."""
    start_time = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start_time) * 1000
    log.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f}ms)")
    return response

# Add the routers
app.include_router(generation_router)
app.include_router(gallery_router)

# Check Health
@app.get("/api/health")
def health(request: Request):
    """
        Liveness check with uptime and peak memory
    """
    usage = resource.getrusage(resource.RUSAGE_SELF)
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - request.app.state.started_at, 3),
        "memory": {"maxRssKb": usage.ru_maxrss},
        "service": settings.app_title,
        "version": settings.app_version,
        "openai": request.app.state.openai_mode,
    }

if __name__ == "__main__":
    uvicorn.run("coloring_app.main:app", host="0.0.0.0", port=8000, reload=True)
