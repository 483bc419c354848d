"""
Logging configuration for the syscheck CLI.

Diagnostics go to stderr through rich so they never interleave with
the status lines and summary printed on stdout.
"""

import logging
import logging.config
from typing import Any, Dict

from rich.console import Console
from rich.logging import RichHandler


def _stderr_handler(**kwargs: Any) -> logging.Handler:
    return RichHandler(console=Console(stderr=True), **kwargs)


def get_logging_config(debug: bool = False) -> Dict[str, Any]:
    """Get logging configuration; ``debug`` lowers the syscheck logger to DEBUG."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(name)s: %(message)s",
                "datefmt": "[%X]",
            }
        },
        "handlers": {
            "default": {
                "()": _stderr_handler,
                "formatter": "default",
                "show_path": False,
                "rich_tracebacks": True,
            }
        },
        "loggers": {
            "syscheck": {
                "handlers": ["default"],
                "level": "DEBUG" if debug else "WARNING",
                "propagate": False,
            }
        },
        "root": {
            "level": "WARNING",
            "handlers": ["default"],
        },
    }


def configure_logging(debug: bool = False) -> None:
    logging.config.dictConfig(get_logging_config(debug))
