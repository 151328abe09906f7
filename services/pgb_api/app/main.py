from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from .event_log import append_event, configure_logging, truncate_query
from .results import build_inline_query_results, get_user_id
from .settings import Settings, get_settings
from .telegram import TelegramError, TelegramTransportError, Update, answer_inline_query


logger = logging.getLogger("pgb.api")


class HealthResponse(BaseModel):
    ok: bool
    token_configured: bool
    at: datetime


class WebhookResponse(BaseModel):
    ok: bool
    handled: bool
    results: int = 0


def _check_secret(settings: Settings, header_value: str | None) -> None:
    if not settings.webhook_secret:
        return
    if not secrets.compare_digest(str(header_value or ""), settings.webhook_secret):
        raise HTTPException(status_code=401, detail="invalid_secret_token")


async def health(request: Request) -> HealthResponse:
    settings: Settings = request.app.state.settings
    return HealthResponse(
        ok=True,
        token_configured=bool(settings.token),
        at=datetime.now(timezone.utc),
    )


async def webhook(
    update: Update,
    request: Request,
    x_telegram_bot_api_secret_token: str | None = Header(default=None),
) -> WebhookResponse:
    settings: Settings = request.app.state.settings
    _check_secret(settings, x_telegram_bot_api_secret_token)

    iq = update.inline_query
    if iq is None:
        logger.debug("update %s has no inline query; ignored", update.update_id)
        return WebhookResponse(ok=True, handled=False)

    results = build_inline_query_results(iq.from_user, iq.query)
    await run_in_threadpool(
        append_event,
        settings,
        {
            "type": "inline_query",
            "update_id": update.update_id,
            "user_id": get_user_id(iq.from_user),
            "query": truncate_query(iq.query),
            "results": [r.id for r in results],
        },
    )

    try:
        await answer_inline_query(settings, iq.id, results)
    except TelegramTransportError as e:
        # Non-2xx makes Telegram redeliver the update.
        logger.error("answer_inline_query unreachable for update %s: %s", update.update_id, e)
        raise HTTPException(status_code=502, detail=f"answer_inline_query_failed: {e}")
    except TelegramError as e:
        logger.warning("answer_inline_query rejected for update %s: %s", update.update_id, e)
        return WebhookResponse(ok=False, handled=False, results=len(results))

    return WebhookResponse(ok=True, handled=True, results=len(results))


def create_app(settings: Settings) -> FastAPI:
    configure_logging(settings.debug)

    app = FastAPI(title="PGB", version="0.1.0", debug=settings.debug)
    app.state.settings = settings
    app.add_api_route("/health", health, methods=["GET"], response_model=HealthResponse)
    app.add_api_route(settings.webhook_path, webhook, methods=["POST"], response_model=WebhookResponse)
    return app


app = create_app(get_settings(require_token=False))
