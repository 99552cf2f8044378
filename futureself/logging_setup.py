"""Logging setup shared by every entry point that embeds the letter core."""

from __future__ import annotations

import logging

from futureself.config import settings

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging with the project format.

    Uses LOG_LEVEL from settings unless an explicit level is given.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=_FORMAT,
    )
