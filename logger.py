"""Logging configuration for Chartwell.

All modules log through children of the ``chartwell`` logger. The CLI sets up
a dated log file plus a terse console handler; library use (tests, embedding)
gets whatever the host application configures.
"""

import logging
from datetime import date
from typing import Optional
from config import Config

ROOT_LOGGER = "chartwell"


def setup_logging(config: Config, console: bool = True) -> logging.Logger:
    """Set up application logging with file and console handlers.

    Args:
        config: Application configuration containing log settings.
        console: Whether to also log to the console.

    Returns:
        Configured root application logger.
    """
    config.log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(config.log_level)

    # Calling setup twice must not duplicate output
    logger.handlers.clear()

    file_handler = logging.FileHandler(
        config.log_dir / f"chartwell-{date.today().isoformat()}.log"
    )
    file_handler.setLevel(config.log_level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(config.log_level)
        console_handler.setFormatter(logging.Formatter("%(levelname)s - %(message)s"))
        logger.addHandler(console_handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get the application logger, or one of its children.

    Args:
        name: Optional child name, e.g. "store" gives "chartwell.store".

    Returns:
        Logger instance.
    """
    if name:
        return logging.getLogger(f"{ROOT_LOGGER}.{name}")
    return logging.getLogger(ROOT_LOGGER)
