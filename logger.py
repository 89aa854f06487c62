"""Logging configuration for Ledger.

Everything logs through the single "ledger" logger. The CLI attaches a dated
log file plus the console; tests and embedding callers can skip the console.
"""

import logging
from datetime import date
from config import Config

LOGGER_NAME = "ledger"

_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_CONSOLE_FORMAT = "%(levelname)s - %(message)s"


def setup_logging(config: Config, console: bool = True) -> logging.Logger:
    """Set up application logging.

    Args:
        config: Application configuration containing log settings.
        console: Also echo records to stderr.

    Returns:
        Configured logger instance.
    """
    config.log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(config.log_level)

    # setup_logging may run more than once per process
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    log_file_path = config.log_dir / f"ledger-{date.today().isoformat()}.log"
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(config.log_level)
    file_handler.setFormatter(
        logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )
    logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(config.log_level)
        console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        logger.addHandler(console_handler)

    return logger


def get_logger() -> logging.Logger:
    """Get the application logger."""
    return logging.getLogger(LOGGER_NAME)
