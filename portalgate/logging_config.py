"""
Logging configuration for the gateway process.

Probe traffic is dropped from the uvicorn access log, and the HTTP client
used for identity lookups is held at WARNING so bearer reads do not log a
line per request.
"""

import logging
import logging.config
from typing import Dict, Any

HEALTH_PATHS = ("/health", "/healthz")

# Chatty third-party loggers and the level they are capped at
QUIET_LOGGERS = {
    "httpx": "WARNING",
    "httpcore": "WARNING",
}


class HealthCheckFilter(logging.Filter):
    """Filter to suppress health check endpoint logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "uvicorn.access":
            message = record.getMessage()
            if "GET" in message and any(f"{path} " in message for path in HEALTH_PATHS):
                return False
        return True


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Build the dictConfig for uvicorn, the gateway and its HTTP client."""
    level = level.upper()
    loggers: Dict[str, Any] = {
        "uvicorn": {"handlers": ["default"], "level": level, "propagate": False},
        "uvicorn.error": {"handlers": ["default"], "level": level, "propagate": False},
        "uvicorn.access": {"handlers": ["access"], "level": level, "propagate": False},
        "portalgate": {"handlers": ["default"], "level": level, "propagate": False},
    }
    for name, quiet_level in QUIET_LOGGERS.items():
        # DEBUG still lets them through
        effective = level if level == "DEBUG" else quiet_level
        loggers[name] = {"handlers": ["default"], "level": effective, "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "health_check_filter": {"()": HealthCheckFilter}
        },
        "formatters": {
            "default": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
            "access": {"format": "%(message)s"},
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": "ext://sys.stdout",
                "filters": ["health_check_filter"],
            },
        },
        "loggers": loggers,
        "root": {"level": level, "handlers": ["default"]},
    }
