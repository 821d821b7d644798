"""
Shared helpers for building tool results.
"""

import time
from typing import Any, Dict, Optional


def create_success_response(data: Any, **extra: Any) -> Dict[str, Any]:
    """
    Build a successful tool result.

    Args:
        data: Raw response payload
        **extra: Additional top-level fields (e.g. tool, summary)

    Returns:
        Dict with success flag, data and response timestamp
    """
    response = {"success": True, "data": data}
    response.update(extra)
    response["timestamp"] = int(time.time() * 1000)
    return response


def create_error_response(
    error_type: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build a structured failure result.

    Args:
        error_type: Error category (validation_error, unknown_tool, api_error, ...)
        message: Human-readable message
        details: Optional extra context

    Returns:
        Dict with success=False and an error object
    """
    error: Dict[str, Any] = {"type": error_type, "message": message}
    if details:
        error["details"] = details

    return {
        "success": False,
        "error": error,
        "timestamp": int(time.time() * 1000),
    }
