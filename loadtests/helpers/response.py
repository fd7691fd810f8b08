"""Response error extraction for load test observability.

Parses GymStore API error responses into human-readable messages. Every
error leaves the API as {"error": {"code": "...", "message": "...", ...}}.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response


def extract_error_detail(response: Response) -> str:
    """Extract a human-readable error message from an API error response.

    Returns a compact string suitable for Locust failure messages and log lines.
    """
    try:
        body = response.json()
    except ValueError:
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        code = error.get("code", "Error")
        message = error.get("message", "")
        return f"{code}: {message}" if message else code
    if error is not None:
        return str(error)

    # Unknown shape, stringify and truncate
    return str(body)[:300]


def error_code(response: Response) -> str | None:
    try:
        return response.json()["error"]["code"]
    except (ValueError, KeyError, TypeError):
        return None
