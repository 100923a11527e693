"""
Logging setup and request ID tracking.

Every inbound update gets a request ID so all log lines produced while
handling it can be correlated. The ID lives in a context variable rather
than thread-local storage because many updates share one event loop
thread.

Usage:
    from perp_bot.log_context import setup_logging, new_request_id, set_request_id

    setup_logging("INFO")
    set_request_id(new_request_id())
"""

import contextvars
import logging
import secrets
import sys
import time
from typing import Optional

_request_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("request_id", default=None)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("httpx", "telegram", "aiohttp.access")


def new_request_id() -> str:
    """Build a fresh request ID, e.g. ``req_1700000000000_a1b2c3d4``."""
    return f"req_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def set_request_id(request_id: str) -> None:
    """
    Set the request ID for the current task context.

    Args:
        request_id: Unique identifier for the current update
    """
    _request_id.set(request_id)


def get_request_id() -> Optional[str]:
    """Get the current request ID from task context."""
    return _request_id.get()


def clear_request_id() -> None:
    """Clear the request ID from the current task context."""
    _request_id.set(None)


class RequestIdFilter(logging.Filter):
    """Attach ``request_id`` to every record so formatters can print it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), handlers=[handler], force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
