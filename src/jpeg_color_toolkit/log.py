"""Logging setup for the jct command."""

import logging

from rich.console import Console
from rich.logging import RichHandler

from .config import LoggingConfig

_MANAGED_HANDLER_FLAG = "_jct_managed_handler"
PACKAGE_LOGGER = "jpeg_color_toolkit"


def _remove_managed_handlers(logger: logging.Logger) -> None:
    """Detach handlers installed by a previous configure_logging call."""
    for handler in list(logger.handlers):
        if getattr(handler, _MANAGED_HANDLER_FLAG, False):
            logger.removeHandler(handler)
            handler.close()


def configure_logging(config: LoggingConfig, verbose: bool = False) -> logging.Logger:
    """
    Attach console (rich) and optional file handlers to the package logger.

    Args:
        config: Logging section of the app config
        verbose: Force DEBUG level

    Returns:
        The package logger
    """
    level = logging.DEBUG if verbose else getattr(logging, str(config.level).upper(), logging.WARNING)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    _remove_managed_handlers(logger)

    if config.console:
        console_handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=False)
        console_handler.setLevel(level)
        setattr(console_handler, _MANAGED_HANDLER_FLAG, True)
        logger.addHandler(console_handler)

    if config.file:
        config.file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter(fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        )
        setattr(file_handler, _MANAGED_HANDLER_FLAG, True)
        logger.addHandler(file_handler)

    return logger
