"""
ElevenLabs TTS Bot - Telegram text-to-speech relay
FastAPI webhook backend
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
import asyncio
import logging
import os
import time

import psutil
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config import get_settings
from errors import BotError, PersistenceCorruptError, best_effort, error_response, log_error
from logging_config import setup_logging
from routers import webhook
from routers.commands import build_default_router
from routers.dispatch import DispatchPipeline
from services.credentials import CredentialAllocator
from services.state_store import StateStore
from services.synthesis import ElevenLabsSynthesizer
from services.telegram_client import TelegramClient

setup_logging(get_settings().log_level)
logger = logging.getLogger(__name__)

BOT_NAME = "ElevenLabs TTS Bot"
START_TIME = time.time()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown events"""
    # Startup
    settings = get_settings()
    settings.validate()
    logger.info(f"Settings: {settings.to_dict()}")

    store = StateStore(settings.state_file, env_admins=settings.admin_ids)
    try:
        store.load(initial_credentials=settings.initial_api_keys)
    except PersistenceCorruptError as e:
        log_error(logger, e, context="startup", include_traceback=False)
        raise
    # Write back the merged view (env admins, seeded keys)
    await store.persist()

    telegram = TelegramClient(
        settings.bot_token,
        api_base=settings.telegram_api_base,
        timeout=settings.telegram_timeout_s,
    )
    synthesizer = ElevenLabsSynthesizer(
        base_url=settings.elevenlabs_base_url,
        model_id=settings.elevenlabs_model_id,
        timeout=settings.elevenlabs_timeout_s,
        tmp_dir=settings.audio_tmp_dir,
    )

    bot_username = None
    async with best_effort("getMe", logger):
        me = await telegram.get_me()
        bot_username = me.get("username")

    allocator = CredentialAllocator(store)
    pipeline = DispatchPipeline(
        store=store,
        allocator=allocator,
        commands=build_default_router(bot_username=bot_username),
        telegram=telegram,
        synthesizer=synthesizer,
        settings=settings,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.pipeline = pipeline

    # Webhook registration is required; failing here aborts startup
    async with best_effort("deleteWebhook", logger):
        await telegram.delete_webhook()
    try:
        await telegram.set_webhook(settings.full_webhook_url, secret_token=settings.webhook_secret or None)
    except BotError as e:
        log_error(logger, e, context="startup", include_traceback=False)
        await telegram.aclose()
        await synthesizer.aclose()
        raise
    logger.info(f"Webhook set to {settings.full_webhook_url}")
    logger.info(
        f"{BOT_NAME} ready (@{bot_username or '?'}, {allocator.pool_size} key(s), "
        f"{len(store.state.admins)} admin(s))"
    )

    yield

    # Shutdown
    await pipeline.drain(settings.shutdown_grace_s)

    try:
        await asyncio.wait_for(telegram.delete_webhook(), timeout=settings.shutdown_webhook_timeout_s)
        logger.info("Webhook deleted")
    except asyncio.TimeoutError:
        logger.warning(f"deleteWebhook timed out after {settings.shutdown_webhook_timeout_s}s")
    except BotError as e:
        logger.warning(f"deleteWebhook failed: {e}")

    await telegram.aclose()
    await synthesizer.aclose()
    logger.info(f"{BOT_NAME} signing off")


app = FastAPI(
    title=BOT_NAME,
    description="Telegram text-to-speech relay powered by ElevenLabs",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(webhook.router, tags=["webhook"])


@app.exception_handler(BotError)
async def bot_error_handler(request: Request, exc: BotError):
    log_error(logger, exc, context=request.url.path, include_traceback=False)
    status = 400 if exc.recoverable else 500
    return JSONResponse(status_code=status, content=error_response(exc, source=request.url.path))


@app.get("/")
async def root():
    return {"status": "healthy", "bot": BOT_NAME, "timestamp": _now_iso()}


@app.get("/health")
async def health(request: Request):
    """Liveness - uptime and process memory."""
    process = psutil.Process(os.getpid())
    mem = process.memory_info()
    pipeline = getattr(request.app.state, "pipeline", None)
    return {
        "status": "ok",
        "uptime": round(time.time() - START_TIME, 1),
        "memory": {
            "rss": mem.rss,
            "vms": mem.vms,
            "percent": round(process.memory_percent(), 2),
        },
        "timestamp": _now_iso(),
        "in_flight": pipeline.in_flight if pipeline else 0,
    }


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(app, host=_settings.host, port=_settings.port)
