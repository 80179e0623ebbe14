from __future__ import annotations

"""Error code taxonomy for harvest and sync failures.

Codes appear in structured log lines and in the per-item entries of the run
summary, so they should stay stable.
"""

from typing import Optional

import requests


class ErrorCode:
    NAVIGATION_TIMEOUT = "navigation_timeout"
    NAVIGATION = "navigation_error"
    SITE_STRUCTURE = "site_structure_changed"
    PAGINATION = "pagination_error"
    LOOKUP_FAILED = "lookup_failed"
    NETWORK = "network_error"
    STORE_401 = "store_http_401_unauthorised"
    STORE_403 = "store_http_403_forbidden"
    STORE_404 = "store_http_404_not_found"
    STORE_422 = "store_http_422_invalid_request"
    STORE_RATE_LIMIT = "store_rate_limit"
    STORE_4XX = "store_http_4xx"
    STORE_5XX = "store_http_5xx"
    INTERNAL = "internal_error"


def classify_http_status(status: Optional[int]) -> str:
    if status is None:
        return ErrorCode.INTERNAL
    if status == 401:
        return ErrorCode.STORE_401
    if status == 403:
        return ErrorCode.STORE_403
    if status == 404:
        return ErrorCode.STORE_404
    if status == 422:
        return ErrorCode.STORE_422
    if status == 429:
        return ErrorCode.STORE_RATE_LIMIT
    if 400 <= status < 500:
        return ErrorCode.STORE_4XX
    if status >= 500:
        return ErrorCode.STORE_5XX
    return ErrorCode.INTERNAL


def classify_store_error(exc: BaseException) -> tuple[str, Optional[int]]:
    """Map an exception raised by the Airtable client to ``(code, status)``."""

    if isinstance(exc, requests.HTTPError):
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
        return classify_http_status(status), status
    if isinstance(exc, (requests.Timeout, requests.ConnectionError)):
        return ErrorCode.NETWORK, None
    return ErrorCode.INTERNAL, None


__all__ = ["ErrorCode", "classify_http_status", "classify_store_error"]
