"""Logging setup for the jiratrack command line."""

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str | int | None = None) -> None:
    """Attach a stream handler to the jiratrack logger.

    Args:
        level: Log level name or number. Falls back to JIRATRACK_LOG_LEVEL,
            then WARNING.
    """
    if level is None:
        level = os.environ.get("JIRATRACK_LOG_LEVEL", "WARNING")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    logger = logging.getLogger("jiratrack")
    logger.setLevel(level)

    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
