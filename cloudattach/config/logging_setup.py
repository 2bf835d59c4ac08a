"""Logging configuration shared by hosts embedding cloudattach."""

import logging

from .settings import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Settings) -> None:
    """Apply the package log format at the configured level."""
    logging.basicConfig(
        format=LOG_FORMAT,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )
