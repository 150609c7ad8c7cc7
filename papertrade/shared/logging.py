"""Root logger setup driven by LoggingSettings."""

from __future__ import annotations

import logging

from papertrade.shared.config import LoggingSettings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(settings: LoggingSettings | None = None) -> None:
    settings = settings or LoggingSettings()
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT, force=True)

    # aiohttp access logs are noisy at INFO
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
