"""Success envelope shared by all routes."""

from typing import Any, Optional


def success(data: Any = None, message: Optional[str] = None) -> dict:
    payload = {"success": True, "data": data}
    if message:
        payload["message"] = message
    return payload
