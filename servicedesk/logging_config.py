"""Process-wide logging setup for the app and the CLI."""

from __future__ import annotations

import logging.config
import sys

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "console": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "console",
            "stream": sys.stderr,
        },
    },
    "loggers": {
        "servicedesk": {"level": "INFO"},
        # SQL echo is controlled by DESK_ECHO_SQL, not the log level
        "sqlalchemy.engine": {"level": "WARNING"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
}


def configure_logging(level: str = "INFO") -> None:
    config = dict(LOGGING_CONFIG)
    config["loggers"] = {**LOGGING_CONFIG["loggers"], "servicedesk": {"level": level.upper()}}
    logging.config.dictConfig(config)
