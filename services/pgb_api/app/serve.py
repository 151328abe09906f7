"""Run the PGB webhook service.

Usage:
  TOKEN=0123456789:abc python -m services.pgb_api.app.serve --port 8080

Plain HTTP only; put it behind a reverse proxy that terminates HTTPS.
"""

from __future__ import annotations

import argparse
import dataclasses

import uvicorn

from .main import create_app
from .settings import Settings, get_settings


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="PGB inline-query webhook server")
    ap.add_argument("--host", default=settings.host, help="Listen address (env HOST)")
    ap.add_argument("--port", type=int, default=settings.port, help="Listen port (env PORT)")
    ap.add_argument("--debug", action="store_true", default=settings.debug, help="Verbose logging (env PGB_DEBUG)")
    return ap


def main(argv: list[str] | None = None) -> None:
    settings = get_settings(require_token=False)
    ap = build_parser(settings)
    args = ap.parse_args(argv)
    if not settings.token:
        ap.error("missing_token: set TOKEN to the Telegram bot token")
    settings = dataclasses.replace(settings, host=args.host, port=args.port, debug=args.debug)

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
