"""Utility functions."""

from .logging import setup_logging, get_logger
from .prompt import confirm

__all__ = [
    "setup_logging",
    "get_logger",
    "confirm",
]
