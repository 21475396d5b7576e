import logging
import os

from rich.logging import RichHandler

ROOT_LOGGER = "shop"


class CenteredFormatter(logging.Formatter):
    """Pads the logger name so messages line up across components."""

    longest_name_length = 14

    def __init__(self, fmt=None, datefmt=None, style="%", initial_width=14):
        super().__init__(fmt, datefmt, style)
        CenteredFormatter.longest_name_length = initial_width

    def format(self, record):
        CenteredFormatter.longest_name_length = max(
            CenteredFormatter.longest_name_length, len(record.name)
        )
        width = CenteredFormatter.longest_name_length
        # work on a copy, other handlers may see the same record
        record = logging.makeLogRecord(record.__dict__)
        record.name = record.name.center(width)
        return super().format(record)


def _level() -> int:
    if os.getenv("DEBUG"):
        return logging.DEBUG
    name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def get_logger(name=None) -> logging.Logger:
    """
    Return a logger under the `shop` namespace, printing through RichHandler.

    DEBUG in the environment forces debug output; LOG_LEVEL picks any other level.
    """
    name = f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER
    logger = logging.getLogger(name)
    level = _level()
    logger.setLevel(level)

    if not logger.handlers:
        handler = RichHandler(
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        handler.setFormatter(CenteredFormatter("[%(name)s]  %(message)s"))
        handler.setLevel(level)
        logger.addHandler(handler)

        logger.propagate = False
        logger.debug(f"Logger for '{name}' initialized with RichHandler.")

    return logger
