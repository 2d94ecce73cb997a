"""
Social Graph API — entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Initialise the relational store engine + SQLAlchemy instrumentation
  3. Create tables if not present
  4. Expose Prometheus /metrics endpoint

Engine errors are translated to HTTP here, by kind. Not-found and forbidden
outcomes share one generic message so non-owners learn nothing about
whether a resource exists.
"""
import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from socialgraph.config import settings
from socialgraph.database import dispose_engine, init_db, init_engine
from socialgraph.errors import ErrorKind, SocialGraphError
from socialgraph.routers import comments, likes, posts, users
from socialgraph.telemetry import instrument_app, instrument_engine, setup_tracing

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()

GENERIC_NOT_FOUND = "not found or unauthorized"

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.CONFLICT: 409,
    ErrorKind.STORE: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown of the store connection pool."""
    logger.info("Starting Social Graph API (env=%s)", settings.environment)

    engine = init_engine()
    instrument_engine(engine)
    await init_db(engine)

    logger.info("Store connected. API ready.")
    yield

    logger.info("Shutting down...")
    await dispose_engine()


app = FastAPI(
    title="Social Graph API",
    description=(
        "Posts, threaded comments, likes and the follow graph, with "
        "ownership checks and paginated aggregate views."
    ),
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(SocialGraphError)
async def social_graph_error_handler(request: Request, exc: SocialGraphError):
    status_code = _STATUS_BY_KIND[exc.kind]
    if exc.kind in (ErrorKind.NOT_FOUND, ErrorKind.FORBIDDEN):
        body = {"error": GENERIC_NOT_FOUND, "reason": exc.reason}
    elif exc.kind is ErrorKind.STORE:
        logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
        body = {"error": "Internal server error"}
    else:
        body = {"error": exc.reason}
    return JSONResponse(status_code=status_code, content=body)


# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(posts.router, prefix="/posts", tags=["Posts"])
app.include_router(comments.router, prefix="/comments", tags=["Comments"])
app.include_router(likes.router, prefix="/likes", tags=["Likes"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
# Scraped by Prometheus
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}
