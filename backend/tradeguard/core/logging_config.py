# backend/tradeguard/core/logging_config.py
import logging

from tradeguard.core.config import settings

LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level_name: str | None = None) -> None:
    """
    Configure logging for the application.
    Call once at startup. Level comes from LOG_LEVEL unless given explicitly.
    """
    level = LOG_LEVEL_MAP.get((level_name or settings.LOG_LEVEL).upper(), logging.INFO)

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    root.setLevel(level)
    logging.getLogger("tradeguard").setLevel(level)

    # Reduce noise from third-party libraries
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
