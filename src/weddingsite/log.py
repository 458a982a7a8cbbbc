"""Logging configuration for weddingsite.

Provides:
- A single stderr handler on the package logger (CloudWatch picks it up
  on Lambda), with the level taken from LOG_LEVEL.
- Optional single-line output (LOG_SINGLE_LINE=true) so tracebacks stay
  in one CloudWatch event.
- A RequestLogger adapter that tags every message with the Lambda and
  API Gateway request ids of the invocation being handled.

Usage:
    from weddingsite.log import get_logger, RequestLogger

    logger = get_logger(__name__)
    log = RequestLogger(logger, correlation)
    log.info("Something happened")
"""

import logging
import os
from typing import Optional, Tuple

PACKAGE_LOGGER = "weddingsite"

_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# winston-style level names also accepted in LOG_LEVEL
_LEVEL_ALIASES = {
    "SILLY": logging.DEBUG,
    "VERBOSE": logging.DEBUG,
    "HTTP": logging.INFO,
    "WARN": logging.WARNING,
}


class _SingleLineFormatter(logging.Formatter):
    """Folds newlines in the message and traceback into ' --> '."""

    def format(self, record):
        return super().format(record).replace("\n", " --> ")


def resolve_level(name) -> Tuple[int, bool]:
    """Map a level name to a logging level.

    Returns the level and whether the name was recognised; unknown names
    resolve to INFO.
    """
    key = str(name or "").strip().upper()
    if key in _LEVEL_ALIASES:
        return _LEVEL_ALIASES[key], True
    level = logging.getLevelName(key)
    if isinstance(level, int):
        return level, True
    return logging.INFO, False


def configure_logging(level: Optional[str] = None, single_line: Optional[bool] = None) -> logging.Logger:
    """Attach the handler to the package logger and set its level.

    Safe to call more than once; the handler is only added the first time
    and later calls just update the level and format.
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")
    if single_line is None:
        single_line = os.environ.get("LOG_SINGLE_LINE", "false").lower() == "true"

    logger = logging.getLogger(PACKAGE_LOGGER)
    resolved, known = resolve_level(level)
    logger.setLevel(resolved)
    # The Lambda runtime installs its own root handler
    logger.propagate = False

    formatter_cls = _SingleLineFormatter if single_line else logging.Formatter
    formatter = formatter_cls(_FORMAT, datefmt=_DATEFMT)

    if not logger.handlers:
        handler = logging.StreamHandler()
        logger.addHandler(handler)
    for handler in logger.handlers:
        handler.setFormatter(formatter)

    if not known:
        logger.warning("Unknown LOG_LEVEL %r, using INFO", level)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the configured package logger."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if not package_logger.handlers:
        configure_logging()
    return logging.getLogger(name)


class RequestLogger(logging.LoggerAdapter):
    """Appends request correlation ids to each message."""

    def __init__(self, logger: logging.Logger, correlation=None):
        super().__init__(logger, {})
        self.correlation = correlation

    def process(self, msg, kwargs):
        if self.correlation is None:
            return msg, kwargs
        tags = []
        if self.correlation.request_id:
            tags.append(f"awsRequestId:{self.correlation.request_id}")
        if self.correlation.api_request_id:
            tags.append(f"apiRequestId:{self.correlation.api_request_id}")
        if tags:
            msg = f"{' | '.join(tags)} | {msg}"
        return msg, kwargs
