"""Logging configuration for DocVault"""
import logging
import sys

from docvault.infrastructure.config.settings import Settings


def setup_logging(settings: Settings) -> None:
    """Configure application-wide logging"""
    log_level = logging.DEBUG if settings.debug else logging.INFO

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
