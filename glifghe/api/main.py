"""
GlIFGHE API — entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Create tables if not present
  3. Connect to Redis
  4. Start the identity provider HTTP client
  5. Expose Prometheus /metrics endpoint
"""
import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI
from prometheus_client import make_asgi_app

from glifghe.api.config import settings
from glifghe.api.database import init_db
from glifghe.api.telemetry import setup_tracing, instrument_app
from glifghe.api.clients.redis_client import close_redis, init_redis
from glifghe.api.clients.identity_client import identity_client
from glifghe.api.routers import users, posts

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown of all external connections."""
    logger.info("Starting GlIFGHE API (env=%s)", settings.environment)

    await init_db()
    await init_redis()
    await identity_client.start()

    logger.info("All services connected. API ready.")
    yield

    logger.info("Shutting down...")
    await identity_client.stop()
    await close_redis()


app = FastAPI(
    title="GlIFGHE API",
    description="Profiles, image posts, comments and the follow graph.",
    version="1.0.0",
    lifespan=lifespan,
)

# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(posts.router, prefix="/posts", tags=["Posts"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}
