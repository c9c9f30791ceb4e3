"""Forward unhandled errors to an external monitoring endpoint.

Reporting is best effort: it is skipped for local runs, and a failed POST is
logged and otherwise ignored.
"""

from __future__ import annotations

import logging
import traceback
from typing import Any

import requests

from config import settings
from database.models import now_iso

logger = logging.getLogger(__name__)

MONITORING_TIMEOUT = 5


def build_error_record(error: BaseException, request_id: str, context: dict[str, Any]) -> dict[str, Any]:
    """A sanitized record of *error*.

    *context* should hold only url, method, userAgent, ip and user.  Request
    bodies and headers are never included.
    """
    return {
        "requestId": request_id,
        "error": {
            "message": str(error),
            "name": type(error).__name__,
            "stack": "".join(traceback.format_exception(error)),
        },
        "context": {
            "url": context.get("url"),
            "method": context.get("method"),
            "userAgent": context.get("userAgent"),
            "ip": context.get("ip"),
            "user": context.get("user"),
        },
        "timestamp": now_iso(),
    }


def report_error(error: BaseException, request_id: str, context: dict[str, Any]) -> bool:
    """Send *error* to the monitoring sink; return True when it was delivered."""
    if settings.is_local:
        return False

    record = build_error_record(error, request_id, context)
    if not settings.monitoring_url:
        logger.info("Error %s recorded for monitoring (no sink configured)", request_id)
        return False

    try:
        resp = requests.post(settings.monitoring_url, json=record, timeout=MONITORING_TIMEOUT)
        resp.raise_for_status()
    except requests.RequestException as exc:
        logger.error("Failed to send error %s to monitoring: %s", request_id, exc)
        return False

    logger.info("Error %s sent to monitoring", request_id)
    return True
