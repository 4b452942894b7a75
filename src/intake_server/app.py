"""Application factory and CLI entry point.

``create_app()`` builds the FastAPI application with:
  - Lifespan handler that wires the intake components and starts the
    Telegram transport (webhook registration or long polling)
  - CORS middleware
  - Global exception handlers (``IntakeError`` → its own status code)
  - All API routes mounted under ``/api/v1``
  - A ``/health`` endpoint for readiness checks

The ``cli()`` function is the ``intake-server`` console-script entry point.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import sqlalchemy
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from intake_db.engine import (
    configure_engine,
    dispose_engine,
    get_engine,
    get_session_factory,
)
from intake_flow.attachments import AttachmentHandler
from intake_flow.completion import CompletionTrigger
from intake_flow.dispatcher import IntakeDispatcher
from intake_flow.engine import IntakeEngine
from intake_flow.errors import IntakeError
from intake_flow.listing import JobListing
from intake_flow.messages import MessageRenderer
from intake_flow.registry import QuestionSetRegistry
from intake_flow.screening import HttpScreeningHandoff
from intake_flow.storage import LocalFileStorage

from intake_server.config import ServerSettings, load_settings
from intake_server.errors import generic_error_handler, intake_error_handler
from intake_server.routes import register_routes
from intake_server.telegram import TelegramTransport

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Lifespan: runs once at startup/shutdown
# ------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialise shared resources at startup, tear down on shutdown.

    Startup:
      1. Build storage, registry, engine, attachment handler and listing
      2. Seed the default question set if none exists
      3. Connect the dispatcher to the Telegram transport and start
         receiving updates
      4. Stash components on ``app.state`` for dependency injection

    Shutdown:
      1. Stop polling and wait for in-flight handoffs
      2. Close the transport and dispose the database engine
    """
    settings: ServerSettings = app.state.settings
    if not settings.telegram_bot_token:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is required")

    configure_engine(settings.database)

    # --- Intake components ---
    storage = LocalFileStorage(settings.upload_dir)
    registry = QuestionSetRegistry()
    renderer = MessageRenderer()

    handoff = None
    if settings.screening_service_url:
        handoff = HttpScreeningHandoff(
            settings.screening_service_url,
            timeout=settings.screening_timeout_seconds,
        )
    else:
        logger.warning("SCREENING_SERVICE_URL not set; completed applications are not forwarded")
    completion = CompletionTrigger(registry, handoff)

    engine = IntakeEngine(registry, storage, completion=completion, renderer=renderer)
    attachments = AttachmentHandler(
        registry, storage, engine, completion=completion, renderer=renderer,
    )
    listing = JobListing(registry, renderer)

    session_factory = get_session_factory()
    if settings.seed_default_set:
        async with session_factory() as db:
            await registry.ensure_default(db)
            await db.commit()

    # --- Transport ---
    transport = TelegramTransport(
        settings.telegram_bot_token,
        api_base=settings.telegram_api_base,
        webhook_secret=settings.telegram_webhook_secret,
    )
    dispatcher = IntakeDispatcher(
        transport,
        session_factory,
        engine=engine,
        attachments=attachments,
        listing=listing,
        completion=completion,
        renderer=renderer,
    )
    dispatcher.register()

    poll_task: asyncio.Task | None = None
    if settings.telegram_mode == "webhook":
        if not settings.telegram_webhook_url:
            raise RuntimeError("TELEGRAM_WEBHOOK_URL is required in webhook mode")
        await transport.set_webhook(settings.telegram_webhook_url)
    else:
        await transport.delete_webhook()
        poll_task = asyncio.create_task(transport.poll_forever())
    logger.info("Telegram transport started in %s mode", settings.telegram_mode)

    app.state.registry = registry
    app.state.listing = listing
    app.state.transport = transport
    app.state.dispatcher = dispatcher

    yield

    # --- Shutdown ---
    if poll_task is not None:
        poll_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await poll_task
    await dispatcher.drain()
    await transport.close()
    await dispose_engine()
    logger.info("Database engine disposed")


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------

def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Build and return the configured FastAPI application."""
    if settings is None:
        settings = load_settings()

    # --- Configure logging ---
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Hiring Intake Server",
        description="Telegram hiring intake bot and question-set admin API",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store settings so the lifespan handler can read them
    app.state.settings = settings

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Exception handlers ---
    app.add_exception_handler(IntakeError, intake_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # --- Health check (outside /api/v1 prefix) ---
    @app.get("/health")
    async def health() -> dict:
        """Readiness check — verifies DB connectivity."""
        try:
            engine = get_engine()
            async with engine.connect() as conn:
                await conn.execute(sqlalchemy.text("SELECT 1"))
            return {"status": "ok"}
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            return {"status": "error", "detail": str(exc)}

    # --- Mount all API routes ---
    register_routes(app)

    return app


# ------------------------------------------------------------------
# Module-level ASGI export (for uvicorn intake_server.app:app)
# ------------------------------------------------------------------
app = create_app()


# ------------------------------------------------------------------
# CLI entry point
# ------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point: ``intake-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "intake_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
