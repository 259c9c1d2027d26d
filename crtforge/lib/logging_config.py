"""JSON logging configuration for crtforge commands."""

import logging

from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with focused field set.

    Includes only 6 fields: timestamp, level, message, exc_info, funcName, lineno.
    """

    def add_fields(self, log_record, record, message_dict):
        """Override to include only specified fields.

        Args:
            log_record: Dict to be logged as JSON
            record: LogRecord object from logging framework
            message_dict: Dict containing message and args
        """
        super().add_fields(log_record, record, message_dict)

        if "levelname" in log_record:
            log_record["level"] = log_record.pop("levelname")

        allowed_fields = {
            "timestamp",
            "level",
            "message",
            "exc_info",
            "funcName",
            "lineno",
        }

        for key in [key for key in log_record if key not in allowed_fields]:
            log_record.pop(key)


def _setup_logger() -> logging.Logger:
    """Initialize and configure the package logger.

    Returns:
        Configured logger with CustomJsonFormatter
    """
    logger = logging.getLogger("crtforge")

    # Module reloads must not stack handlers
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    formatter = CustomJsonFormatter(
        fmt="%(timestamp)s %(levelname)s %(funcName)s %(lineno)d %(message)s",
        timestamp=True,
    )
    handler.setFormatter(formatter)

    logger.setLevel(logging.INFO)
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def set_verbosity(verbose: int) -> None:
    """Lower the package log level to DEBUG when -v was given at least once."""
    LOGGER.setLevel(logging.DEBUG if verbose > 0 else logging.INFO)


LOGGER = _setup_logger()
