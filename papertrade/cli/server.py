"""Run the quote proxy server."""

from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

from aiohttp import web

from papertrade.server.app import create_app
from papertrade.shared.config import get_settings
from papertrade.shared.logging import configure_logging

logger = logging.getLogger(__name__)


def main(argv: Optional[Sequence[str]] = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Run the papertrade quote proxy")
    parser.add_argument("--host", default=settings.server.host)
    parser.add_argument("--port", type=int, default=settings.server.port)
    args = parser.parse_args(argv)

    configure_logging(settings.logging)
    app = create_app(settings=settings.server)
    logger.info(f"Proxy running at http://{args.host}:{args.port}")
    logger.info(f"Example: http://localhost:{args.port}/api/stock/RELIANCE.NS")
    web.run_app(app, host=args.host, port=args.port, print=None)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
