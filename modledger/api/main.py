"""
modledger.api.main — FastAPI application entry point
======================================================

Run with::

    uvicorn modledger.api.main:app --reload --port 8000

When ``DISCORD_TOKEN`` is set the lifespan also starts the Discord bot on
the same event loop, so the ``/api/bot/*`` actions can reach it.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from modledger.api.deps import get_config, get_engine  # noqa: E402
from modledger.api.routes.bot import router as bot_router  # noqa: E402
from modledger.api.routes.moderators import router as moderators_router  # noqa: E402
from modledger.api.routes.settings import router as settings_router  # noqa: E402
from modledger.database.engine import init_db  # noqa: E402
from modledger.errors import ModLedgerError  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


async def _start_bot(app: FastAPI, token: str) -> None:
    from modledger.bot.core import ModLedgerBot

    bot = ModLedgerBot(cfg=get_config(), engine=get_engine())
    app.state.bot = bot
    app.state.bot_task = asyncio.create_task(bot.start(token), name="modledger-bot")
    logger.info("Discord bot starting alongside the API")


async def _stop_bot(app: FastAPI) -> None:
    bot = app.state.bot
    if bot is None:
        return
    await bot.close()
    task: asyncio.Task = app.state.bot_task
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
    app.state.bot = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — create tables, seed, start the bot."""
    engine = get_engine()
    init_db(engine)
    logger.info("ModLedger API started — engine ready (%s)", engine.url.database)

    token = os.getenv("DISCORD_TOKEN")
    if token:
        await _start_bot(app, token)
    else:
        logger.warning("DISCORD_TOKEN not set — bot actions will answer 503")

    yield

    await _stop_bot(app)
    logger.info("ModLedger API shutting down")


app = FastAPI(
    title="ModLedger Dashboard API",
    version="1.0.0",
    lifespan=lifespan,
)
app.state.bot = None

# CORS — allow the dashboard dev server and production frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error rendering
# ---------------------------------------------------------------------------
@app.exception_handler(ModLedgerError)
async def modledger_error_handler(request: Request, exc: ModLedgerError) -> JSONResponse:
    body: dict = {"message": exc.message}
    field = getattr(exc, "field", None)
    if field:
        body["field"] = field
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    loc = [str(p) for p in first.get("loc", ()) if p != "body"]
    return JSONResponse(
        status_code=400,
        content={
            "message": first.get("msg", "Invalid request"),
            "field": ".".join(loc) or None,
        },
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# Mount routers
app.include_router(moderators_router, prefix="/api")
app.include_router(settings_router, prefix="/api")
app.include_router(bot_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
