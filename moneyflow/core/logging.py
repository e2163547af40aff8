from __future__ import annotations

import logging
from logging.config import dictConfig

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Install a single console handler for the ``moneyflow`` loggers.

    Safe to call more than once; only the first call installs handlers.
    """
    global _configured
    if _configured:
        logging.getLogger("moneyflow").setLevel(level.upper())
        return
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
            },
            "handlers": {
                "console": {"class": "logging.StreamHandler", "formatter": "default"},
            },
            "loggers": {
                "moneyflow": {"handlers": ["console"], "level": level.upper(), "propagate": True},
                "apscheduler": {"handlers": ["console"], "level": "WARNING", "propagate": False},
            },
        }
    )
    _configured = True
