from __future__ import annotations

import json
import logging
import os
import time
from typing import Any

from .settings import Settings


_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_QUERY_MAX_CHARS = 200


def _now_ms() -> int:
    return int(time.time() * 1000)


def configure_logging(debug: bool) -> None:
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)


def truncate_query(text: str, max_chars: int = _QUERY_MAX_CHARS) -> str:
    t = str(text or "")
    if len(t) <= max_chars:
        return t
    return t[:max_chars] + f"... ({len(t)} chars)"


def append_event(settings: Settings, event: dict[str, Any]) -> None:
    path = settings.event_log
    if not path:
        return
    try:
        parent = os.path.dirname(os.path.abspath(path))
        os.makedirs(parent, exist_ok=True)
        payload = {"ts": _now_ms(), **(event or {})}
        with open(path, "a", encoding="utf-8", errors="backslashreplace") as f:
            f.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
    except (OSError, TypeError, ValueError) as e:
        # Best-effort; a broken event log never fails a request.
        logging.getLogger("pgb.event_log").debug("event_log_write_failed: %s", e)
