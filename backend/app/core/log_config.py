import logging
import sys

from app.core.config import settings


def setup_logging(level: int | str | None = None, format_string: str | None = None) -> None:
    """Configure the root logger and align uvicorn's loggers with it."""
    level = level or settings.LOG_LEVEL
    if format_string is None:
        format_string = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=format_string, stream=sys.stdout, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "arq"):
        logging.getLogger(name).setLevel(level)
    logging.getLogger("app").setLevel(level)
