from __future__ import annotations

from dataclasses import dataclass
import os


DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_TIMEOUT_S = 10.0
DEFAULT_TELEGRAM_API = "https://api.telegram.org"


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    token: str | None
    debug: bool
    timeout_s: float
    telegram_api: str
    webhook_path: str
    webhook_secret: str | None
    event_log: str | None


def _truthy(s: str | None) -> bool:
    return str(s or "").strip().lower() in ("1", "true", "yes", "y", "on")


def _repo_root() -> str:
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", ".."))


_QUOTES = ("'", '"')


def _parse_dotenv_line(raw: str) -> tuple[str, str] | None:
    line = raw.strip()
    if not line or line.startswith("#"):
        return None
    line = line.removeprefix("export ").strip()
    key, sep, val = line.partition("=")
    key, val = key.strip(), val.strip()
    if not sep or not key:
        return None
    if len(val) >= 2 and val[0] == val[-1] and val[0] in _QUOTES:
        val = val[1:-1]
    return key, val


def _load_dotenv(path: str) -> dict[str, str]:
    """Read KEY=value pairs (optionally quoted or `export`-prefixed) from a .env file.

    A missing or unreadable file yields no values.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
    except OSError:
        return {}
    return dict(kv for kv in map(_parse_dotenv_line, lines) if kv is not None)


def _int_or(raw: str | None, fallback: int) -> int:
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return fallback


def _float_or(raw: str | None, fallback: float) -> float:
    try:
        v = float(str(raw).strip())
    except (TypeError, ValueError):
        return fallback
    return v if v > 0 else fallback


def _normalize_path(raw: str | None) -> str:
    p = (raw or "").strip() or "/"
    if not p.startswith("/"):
        p = "/" + p
    return p


def get_settings(*, require_token: bool = True, dotenv_path: str | None = None) -> Settings:
    # Exported env vars win; otherwise fall back to the repo .env.
    dotenv = _load_dotenv(dotenv_path or os.path.join(_repo_root(), ".env"))

    def env_or_dotenv(key: str) -> str | None:
        return os.environ.get(key) or dotenv.get(key)

    token = (env_or_dotenv("TOKEN") or "").strip() or None
    if require_token and not token:
        raise RuntimeError("missing_token: set TOKEN to the Telegram bot token")

    return Settings(
        host=(env_or_dotenv("HOST") or DEFAULT_HOST).strip(),
        port=_int_or(env_or_dotenv("PORT"), DEFAULT_PORT),
        token=token,
        debug=_truthy(env_or_dotenv("PGB_DEBUG")),
        timeout_s=_float_or(env_or_dotenv("PGB_TIMEOUT_S"), DEFAULT_TIMEOUT_S),
        telegram_api=(env_or_dotenv("PGB_TELEGRAM_API") or DEFAULT_TELEGRAM_API).rstrip("/"),
        webhook_path=_normalize_path(env_or_dotenv("PGB_WEBHOOK_PATH")),
        webhook_secret=(env_or_dotenv("PGB_WEBHOOK_SECRET") or "").strip() or None,
        event_log=(env_or_dotenv("PGB_EVENT_LOG") or "").strip() or None,
    )
