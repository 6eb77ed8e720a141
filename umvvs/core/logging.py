"""Structured logging for the options API.

One ``umvvs_api`` logger writes key=value lines to stdout: HTTP request and
response lines from the app middleware, ADVANCE lines for every settled
dropdown update, and BROWSER lines for launch, navigation and shutdown.
"""

import logging
import sys
from typing import Any


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure structured logging for the application."""
    logger = logging.getLogger("umvvs_api")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG)

    # Format: timestamp - level - module - message
    formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger


# Global logger instance
logger = setup_logging()


def log_request(method: str, path: str, **kwargs: Any) -> None:
    """Log an incoming request."""
    extra = " ".join(f"{k}={v}" for k, v in kwargs.items())
    logger.info(f"REQUEST {method} {path} {extra}".strip())


def log_response(method: str, path: str, status: int, duration_ms: float) -> None:
    """Log an outgoing response."""
    logger.info(
        f"RESPONSE {method} {path} status={status} duration_ms={duration_ms:.2f}"
    )


def log_error(message: str, exc: Exception | None = None, **kwargs: Any) -> None:
    """Log an error with optional exception."""
    extra = " ".join(f"{k}={v}" for k, v in kwargs.items())
    if exc:
        logger.error(f"ERROR {message} {extra}".strip(), exc_info=exc)
    else:
        logger.error(f"ERROR {message} {extra}".strip())


def log_stage_advance(
    trigger: str, target: str, value: str, branch: str, duration_ms: float
) -> None:
    """Log a settled dependent-field update."""
    logger.info(
        f"ADVANCE {trigger}->{target} value={value} branch={branch} "
        f"duration_ms={duration_ms:.2f}"
    )


def log_browser_session(
    operation: str, success: bool, duration_ms: float | None = None, **kwargs: Any
) -> None:
    """Log a browser lifecycle operation."""
    status = "success" if success else "failed"
    duration = f"duration_ms={duration_ms:.2f}" if duration_ms else ""
    extra = " ".join(f"{k}={v}" for k, v in kwargs.items())
    logger.info(f"BROWSER {operation} status={status} {duration} {extra}".strip())
