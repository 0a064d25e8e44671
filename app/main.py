"""FastAPI entry point: Telegram webhook plus admin routes."""
import json
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from contextlib import asynccontextmanager
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from rivnefish.client import RfApi

from app.config import load_config
from app.errors import ReportNotFound, TransportError
from app.logging_config import setup_logging
from app.snapshot import VoteSnapshot, read_snapshot_file, write_snapshot_file
from app.state import BotState
from app.telegram_handler import TelegramBotHandler
from app.transport import TelegramTransport

setup_logging()
logger = logging.getLogger(__name__)

config = load_config()
bot_state = BotState()
telegram_handler = None

if config.bot_token:
    logger.info(f"RVFISH_BOTTOKEN found, length: {len(config.bot_token)}")
else:
    logger.warning("RVFISH_BOTTOKEN not set - Telegram integration disabled")
if not config.channel:
    logger.warning("RVFISH_CHANNEL not set - publishing and votes disabled")


class TopIds(BaseModel):
    ids: list[int]


class Announcement(BaseModel):
    text: str = ""
    images: list[str] = []
    chat: str | None = None


async def init_telegram():
    """Create the webhook handler and restore the saved vote board."""
    global telegram_handler
    if not config.bot_token or telegram_handler is not None:
        return
    try:
        handler = TelegramBotHandler(
            config=config,
            state=bot_state,
            api=RfApi(config.api_url),
            transport=TelegramTransport.from_token(config.bot_token),
        )
        await handler.initialize()
        telegram_handler = handler
        logger.info(f"Telegram bot {config.bot_name} initialized")
    except Exception as e:
        logger.exception(f"Failed to initialize Telegram bot: {e}")
        return

    if config.state_file:
        snapshot = read_snapshot_file(config.state_file)
        if snapshot is not None:
            await telegram_handler.load_state(snapshot)


async def shutdown_telegram():
    if telegram_handler is None:
        return
    if config.state_file:
        try:
            write_snapshot_file(config.state_file, await telegram_handler.save_state())
        except OSError as e:
            logger.error(f"Failed to save vote snapshot to {config.state_file}: {e}")
    await telegram_handler.shutdown()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup logic
    await init_telegram()
    yield
    # Shutdown logic
    await shutdown_telegram()


app = FastAPI(lifespan=lifespan)

# Rate limiting configuration
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded errors.

    Returns JSONResponse instead of raising exception.
    """
    logger.warning(f"Rate limit exceeded for {request.client.host}")
    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "detail": "Too many requests. Please try again later.",
        }
    )


def _require_handler() -> TelegramBotHandler:
    if telegram_handler is None:
        raise HTTPException(status_code=503, detail="Telegram bot not configured")
    return telegram_handler


@limiter.limit(config.webhook_rate_limit)
async def telegram_webhook(request: Request):
    """Webhook endpoint for Telegram bot updates.

    Always acknowledges with 200 once the bot is configured; a payload that
    is not JSON is logged and dropped.
    """
    handler = _require_handler()
    body = (await request.body()).decode("utf-8", errors="replace")
    try:
        update_data = json.loads(body)
    except ValueError as e:
        logger.error(f"read_update error: {e}; received: {body}")
        return {"ok": True}
    await handler.handle_webhook(update_data, body)
    return {"ok": True}


app.add_api_route(config.listen_path, telegram_webhook, methods=["POST"])


@app.get("/reload_places")
async def reload_places():
    """Refetch the catalog and invalidate the place info cache."""
    places = await _require_handler().reload()
    return {"ok": True, "places": places}


@app.post("/set_top")
async def set_top(body: TopIds):
    count = await _require_handler().set_top(body.ids)
    return {"ok": True, "top": count}


@app.post("/announce")
async def announce(body: Announcement):
    if not body.text and not body.images:
        raise HTTPException(status_code=400, detail="Nothing to announce")
    try:
        await _require_handler().announce(body.text, body.images, body.chat)
    except TransportError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"ok": True}


@app.post("/publish/{report_id}")
async def publish(report_id: int):
    """Publish a fishing report to the channel with a vote counter."""
    try:
        message_id = await _require_handler().publish(report_id)
    except ReportNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TransportError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"ok": True, "message_id": message_id}


@app.post("/load_state")
async def load_state(snapshot: VoteSnapshot):
    count = await _require_handler().load_state(snapshot)
    return {"ok": True, "messages": count}


@app.get("/save_state")
async def save_state():
    snapshot = await _require_handler().save_state()
    return snapshot.to_json_dict()


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/healthz")
async def healthz():
    """Basic health check."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.host, port=config.port)
