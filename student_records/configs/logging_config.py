"""Logging setup for the API process."""

import logging

from .settings import settings

LOG_FORMAT = "[%(asctime)s: %(levelname)s/%(name)s] %(message)s"

_configured = False


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once.

    Args:
        level: Log level name; defaults to ``settings.LOG_LEVEL``.
    """
    global _configured
    if _configured:
        return
    logging.basicConfig(level=(level or settings.LOG_LEVEL).upper(), format=LOG_FORMAT)
    _configured = True
