"""Logging configuration for the sync service"""
import logging
import sys

from invoice_sync.infrastructure.config.settings import get_settings

# Client libraries that log every request at INFO/DEBUG
NOISY_LOGGERS = ("botocore", "aiobotocore", "googleapiclient.discovery_cache", "httpx", "msal")


def setup_logging() -> None:
    """Configure root logging and quieten the mail and AWS client libraries"""
    settings = get_settings()
    if settings.log_level:
        level = logging.getLevelName(settings.log_level.upper())
    else:
        level = logging.DEBUG if settings.debug else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
