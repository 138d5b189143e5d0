"""
FastAPI application entry point.
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from boardsync import __version__
from boardsync.api import api_router
from boardsync.config import get_settings
from boardsync.core import (
    BoundedWorkerPool,
    CalendarClient,
    RetryExecutor,
    TrelloClient,
)
from boardsync.core.exceptions import SubscriptionError
from boardsync.database import close_db, get_session_factory, init_db, ping_db
from boardsync.services import Reconciler, SQLTaskStore, SubscriptionManager

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

REGISTRATION_POLL_SECONDS = 0.05


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting Trello-GCal sync...")

    await init_db()
    logger.info("Database initialized")

    executor = RetryExecutor.from_settings(settings)
    calendar = CalendarClient.from_settings(settings, executor)
    await calendar.connect()

    trello = TrelloClient(
        api_key=settings.trello_api_key,
        api_token=settings.trello_api_token,
        callback_url=settings.trello_callback_url,
        timeout=settings.http_timeout_seconds,
    )
    await trello.connect()

    app.state.calendar = calendar
    app.state.subscriptions = SubscriptionManager(trello, executor)
    app.state.reconciler = Reconciler(SQLTaskStore(get_session_factory()), calendar)
    app.state.worker_pool = BoundedWorkerPool(settings.max_concurrent_webhooks)

    yield

    # Shutdown: the server has stopped accepting connections by now
    logger.info("Shutting down Trello-GCal sync...")

    if await app.state.worker_pool.drain(timeout=settings.shutdown_timeout_seconds):
        logger.info("In-flight webhooks drained")

    failures = await app.state.subscriptions.deregister_all()
    if failures:
        logger.error("%d webhook(s) could not be deleted", len(failures))

    await trello.disconnect()
    await calendar.disconnect()

    await close_db()
    logger.info("Database connection closed")

    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Trello-GCal Sync",
    description="Mirrors Trello card due dates as Google Calendar events",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# Exception handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


# Include API routes
app.include_router(api_router)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
    }


# Ready check endpoint
@app.get("/ready")
async def ready_check(request: Request):
    """Readiness check endpoint."""
    try:
        await ping_db()

        calendar = getattr(request.app.state, "calendar", None)
        if calendar is None or not calendar.is_ready:
            raise RuntimeError("calendar client is not initialized")

        return {
            "status": "ready",
            "database": "connected",
            "calendar": "initialized",
        }
    except Exception as e:
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "error": str(e),
            },
        )


async def serve() -> int:
    """
    Run the HTTP server and register the board webhooks once it is up.

    Trello validates the callback URL during registration, so the server
    must be accepting connections first. Returns the process exit status.
    """
    config = uvicorn.Config(
        app,
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
    server = uvicorn.Server(config)
    serve_task = asyncio.create_task(server.serve())

    while not server.started:
        if serve_task.done():
            await serve_task
            return 1
        await asyncio.sleep(REGISTRATION_POLL_SECONDS)

    logger.info("Registering Trello webhook(s)...")
    try:
        subscriptions = await app.state.subscriptions.register_all(settings.board_ids)
    except SubscriptionError as e:
        logger.critical("Failed to register webhooks on startup: %s", e)
        server.should_exit = True
        await serve_task
        return 1

    logger.info("Registered %d webhook(s): %s", len(subscriptions), subscriptions)
    await serve_task
    return 0


def run() -> None:
    sys.exit(asyncio.run(serve()))


if __name__ == "__main__":
    run()
