"""Console logging for patch-agent.

Every module logs through a child of the ``patch_agent`` logger, so one
handler installed by :func:`setup_logging` covers the whole package.
"""

import logging
import re
import sys
from typing import Optional, TextIO

LOGGER_NAME = "patch_agent"

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s - %(message)s"
DEBUG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s:%(lineno)d - %(message)s"

# Third-party loggers that are too chatty below WARNING
QUIET_LOGGERS = ("github", "urllib3")

_GITHUB_TOKEN_PATTERN = re.compile(r"\b(?:gh[pousr]_[A-Za-z0-9]{20,}|github_pat_[A-Za-z0-9_]{20,})\b")
REDACTED = "***"


class TokenRedactingFilter(logging.Filter):
    """Masks GitHub tokens in log messages (git stderr may echo credentialed URLs)."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _GITHUB_TOKEN_PATTERN.sub(REDACTED, message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging(debug: bool = False, stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Send the package's log records to ``stream`` (default: stdout).

    Calling it again replaces the handler installed by the previous call.

    Args:
        debug: Log at DEBUG, with logger name and line number
        stream: Where to write records

    Returns:
        The ``patch_agent`` logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(DEBUG_FORMAT if debug else DEFAULT_FORMAT))
    handler.addFilter(TokenRedactingFilter())
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Return the package logger, or a child of it.

    >>> get_logger().name
    'patch_agent'
    >>> get_logger("patch_agent.tools.git_tool").name
    'patch_agent.tools.git_tool'
    >>> get_logger("git").name
    'patch_agent.git'
    """
    if not name or name == LOGGER_NAME:
        return logging.getLogger(LOGGER_NAME)
    if name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
