from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from .outcomes import generate_divination, generate_slap
from .seeding import DrawStream, Instant, derive_seed, new_stream


DEFAULT_LOCALE = "zh"

DIVINE_ID = "divine"
PIA_ID = "pia"


class UserLike(Protocol):
    id: int
    language_code: str | None


@dataclass
class RequestContext:
    stream: DrawStream
    query: str
    locale: str


@dataclass(frozen=True)
class InlineResult:
    id: str
    title: str
    text: str

    def to_article(self) -> dict[str, Any]:
        return {
            "type": "article",
            "id": self.id,
            "title": self.title,
            "input_message_content": {"message_text": self.text},
        }


def get_user_id(user: UserLike | None) -> int:
    if user is None:
        return 0
    return int(user.id)


def get_user_locale(user: UserLike | None) -> str:
    # Missing identity maps to the primary locale, not English.
    if user is None:
        return DEFAULT_LOCALE
    return (getattr(user, "language_code", None) or "").strip() or DEFAULT_LOCALE


def get_locale_titles(locale: str) -> tuple[str, str]:
    if locale == "zh":
        return "求签", "Pia"
    return "Divination", "Pia"


def build_request_context(user_id: int | None, query_text: str, locale: str | None, now: Instant) -> RequestContext:
    seed = derive_seed(user_id, query_text, now)
    return RequestContext(
        stream=new_stream(seed),
        query=query_text,
        locale=locale or DEFAULT_LOCALE,
    )


def build_results(user_id: int | None, query_text: str, locale: str | None, now: Instant) -> list[InlineResult]:
    """Answer one inline query.

    Draw order is fixed: the divination draws first, the slap draws from
    whatever is left of the same stream.
    """
    ctx = build_request_context(user_id, query_text, locale, now)
    divine_title, pia_title = get_locale_titles(ctx.locale)

    divination = generate_divination(ctx.stream, ctx.query)
    slap = generate_slap(ctx.stream, ctx.query)

    return [
        InlineResult(id=DIVINE_ID, title=divine_title, text=divination),
        InlineResult(id=PIA_ID, title=pia_title, text=slap),
    ]


def build_inline_query_results(user: UserLike | None, query_text: str, now: Instant | None = None) -> list[InlineResult]:
    if now is None:
        now = datetime.now(timezone.utc)
    return build_results(get_user_id(user), query_text, get_user_locale(user), now)
