from __future__ import annotations

import time
from typing import Any

import httpx
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, Field

from .event_log import append_event
from .results import InlineResult
from .settings import Settings


class TelegramError(RuntimeError):
    pass


class TelegramTransportError(TelegramError):
    """The Bot API could not be reached; the call may succeed if retried."""


class TelegramUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    is_bot: bool = False
    first_name: str = ""
    language_code: str | None = None


class InlineQuery(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    from_user: TelegramUser | None = Field(default=None, alias="from")
    query: str = ""
    offset: str = ""


class Update(BaseModel):
    model_config = ConfigDict(extra="ignore")

    update_id: int
    inline_query: InlineQuery | None = None


def method_url(settings: Settings, method: str) -> str:
    return f"{settings.telegram_api}/bot{settings.token}/{method}"


async def call_method(settings: Settings, method: str, body: dict[str, Any]) -> Any:
    if not settings.token:
        raise TelegramError("missing_token")

    started = time.time()
    try:
        async with httpx.AsyncClient(timeout=settings.timeout_s) as client:
            r = await client.post(method_url(settings, method), json=body)
    except httpx.HTTPError as e:
        raise TelegramTransportError(f"{method}: {type(e).__name__}: {e}") from e

    await run_in_threadpool(
        append_event,
        settings,
        {
            "type": "telegram.call",
            "method": method,
            "status": r.status_code,
            "duration_ms": int(max(0.0, (time.time() - started) * 1000.0)),
        },
    )

    try:
        payload = r.json()
    except ValueError:
        payload = None

    if r.status_code >= 300 or not isinstance(payload, dict) or not payload.get("ok"):
        desc = payload.get("description") if isinstance(payload, dict) else r.text[:500]
        raise TelegramError(f"{method}: status={r.status_code} {desc}")
    return payload.get("result")


async def answer_inline_query(settings: Settings, inline_query_id: str, results: list[InlineResult]) -> Any:
    return await call_method(
        settings,
        "answerInlineQuery",
        {
            "inline_query_id": inline_query_id,
            "results": [r.to_article() for r in results],
        },
    )
