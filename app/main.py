"""
Subscription Tracker - FastAPI Application
Backend API for recurring subscription tracking and payment reminders
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from app.api.routes import analytics, auth, health, subscriptions
from app.config import settings
from app.core.exceptions import PersistenceFailure
from app.database import init_db
from app.services.reminder_dispatcher import ReminderDispatcher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting %s...", settings.app_name)

    init_db()
    logger.info("Database initialized")
    logger.info("API running on %s environment", settings.app_env)

    dispatcher = None
    if settings.reminder_dispatch_enabled:
        # Built per lifespan so its stop event belongs to the running loop.
        dispatcher = ReminderDispatcher(poll_seconds=settings.reminder_poll_seconds)
        dispatcher.start()
    app.state.reminder_dispatcher = dispatcher
    yield
    if dispatcher is not None:
        await dispatcher.stop()
    logger.info("Shutting down %s...", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="Backend API for subscription tracking",
    version="1.0.0",
    lifespan=lifespan,
)

# Respect proxy forwarded proto/host so redirects don't downgrade to http.
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PersistenceFailure)
async def persistence_failure_handler(request: Request, exc: PersistenceFailure) -> JSONResponse:
    logger.error("Persistence failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Could not save subscription, please try again"},
    )


@app.get("/")
async def root() -> dict:
    return {
        "name": settings.app_name,
        "environment": settings.app_env,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


prefix = settings.api_v1_prefix
app.include_router(health.router, prefix=prefix, tags=["Health"])
app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["Auth"])
app.include_router(
    subscriptions.router, prefix=f"{prefix}/subscriptions", tags=["Subscriptions"]
)
app.include_router(analytics.router, prefix=f"{prefix}/analytics", tags=["Analytics"])
