"""FastAPI backend for TeamSync workspaces and chat."""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from api.error_handlers import register_error_handlers
from api.middleware import MetricsMiddleware, get_metrics, get_metrics_content_type
from api.routes import chat, members, workspaces, ws
from api.routes.dependencies import get_engine
from api.services import ChatService
from teamsync.config import (
    FRONTEND_ORIGIN,
    LOG_JSON,
    LOG_LEVEL,
    MESSAGE_PURGE_INTERVAL_SECONDS,
)
from teamsync.logging import configure_structlog, get_logger

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
configure_structlog(json_format=LOG_JSON, log_level=LOG_LEVEL)

logger = get_logger(__name__)


async def purge_expired_messages_loop(
    chat_service: ChatService, interval_seconds: float
) -> None:
    """Delete expired chat messages every interval until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await run_in_threadpool(chat_service.purge_expired)
        except Exception:
            logger.exception("chat_purge_failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    purge_task = asyncio.create_task(
        purge_expired_messages_loop(
            ChatService(get_engine()), MESSAGE_PURGE_INTERVAL_SECONDS
        )
    )
    app.state.purge_task = purge_task
    try:
        yield
    finally:
        purge_task.cancel()
        with suppress(asyncio.CancelledError):
            await purge_task
        app.state.purge_task = None


app = FastAPI(
    title="TeamSync API",
    description="Workspace membership, roles and real-time chat",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware is added in reverse order of execution: CORS -> Metrics -> Route
app.add_middleware(MetricsMiddleware)

# CORS for the web client (outermost - handles preflight requests)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register global error handlers
register_error_handlers(app)

app.include_router(workspaces.router, prefix="/api")
app.include_router(members.router, prefix="/api")
app.include_router(chat.router, prefix="/api")
app.include_router(ws.router, prefix="/api/ws", tags=["websocket"])


@app.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type(),
    )
