"""Request logging middleware.

before_request stamps the start time; after_request logs method, path,
status and duration. 4xx responses log at WARNING, 5xx at ERROR. Health
checks are skipped to keep the log readable.
"""

import logging
import time

from flask import g, request

logger = logging.getLogger("xistracloud.requests")

QUIET_PATHS = ("/health",)


def start_timer():
    g.request_started = time.monotonic()


def log_request(response):
    if request.path in QUIET_PATHS:
        return response

    started = getattr(g, "request_started", None)
    duration_ms = (time.monotonic() - started) * 1000 if started else 0.0
    message = (
        f"{request.method} {request.path} {response.status_code} "
        f"{duration_ms:.0f}ms ip={request.remote_addr}"
    )
    if response.status_code >= 500:
        logger.error(message)
    elif response.status_code >= 400:
        logger.warning(message)
    else:
        logger.info(message)
    return response


def init_request_logging(app):
    """Register the timing hooks on the app."""
    app.before_request(start_timer)
    app.after_request(log_request)
