"""Logging configuration for the application"""
import logging

from orphancare.core.config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Domain loggers used across services and jobs
DOMAIN_LOGGERS = ("webhook", "reconciliation", "reports", "security", "api_access")


def setup_logging():
    """Configure the root logger once at startup.

    The domain loggers follow LOG_LEVEL. Third-party clients and uvicorn's access
    log are held at WARNING; api_access records every request.
    """
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S', force=True)

    for name in DOMAIN_LOGGERS:
        logging.getLogger(name).setLevel(level)

    for name in ("stripe", "urllib3", "httpx", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.WARNING)
