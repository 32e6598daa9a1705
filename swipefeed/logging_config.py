"""Logging configuration for swipefeed."""
import logging
import logging.handlers
from pathlib import Path

from config.settings import settings


def setup_logging(
    level: str | None = None,
    log_file: str | None = None,
) -> None:
    """Configure application-wide logging.

    Call once at startup: swipefeed.main does so, and an application that
    embeds the engine should do the same before creating any session.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR); defaults to settings.log_level
        log_file: Optional path for rotating file handler; defaults to settings.log_file
    """
    root = logging.getLogger()
    level = level or settings.log_level
    log_file = log_file or settings.log_file

    # Avoid duplicate handlers on repeated calls
    if root.handlers:
        return

    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler()
    console.setFormatter(fmt)
    root.addHandler(console)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
        )
        file_handler.setFormatter(fmt)
        root.addHandler(file_handler)

    # Quiet noisy libraries
    for name in ("aiohttp", "sqlalchemy", "asyncio"):
        logging.getLogger(name).setLevel(logging.WARNING)
